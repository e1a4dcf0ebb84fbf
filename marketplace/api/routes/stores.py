"""
Store Provisioning API Routes (admin)
"""
from datetime import datetime

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, field_validator
from pydantic.alias_generators import to_camel
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.api.dependencies.admin_auth import require_admin_api_key
from marketplace.api.dependencies.tenant import get_tenant_resolver
from marketplace.db.database import get_db
from marketplace.domain.services.provisioning_service import ProvisioningService
from marketplace.domain.services.tenant_resolver import TenantResolver

router = APIRouter(dependencies=[Depends(require_admin_api_key)])

_CAMEL = {"alias_generator": to_camel, "populate_by_name": True}


class CreateStoreRequest(BaseModel):
    store_name: str

    model_config = _CAMEL

    @field_validator("store_name")
    @classmethod
    def validate_store_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("storeName is required")
        if len(v) > 200:
            raise ValueError("storeName must be at most 200 characters")
        return v


class UpdateStoreConfigRequest(BaseModel):
    store_name: str | None = None
    currency: str | None = None
    locale: str | None = None
    theme: str | None = None

    model_config = _CAMEL


class BindDomainRequest(BaseModel):
    subdomain: str

    model_config = _CAMEL


class StoreResponse(BaseModel):
    tenant_id: str
    status: str
    store_name: str
    subdomain: str | None = None
    currency: str
    locale: str
    theme: str

    model_config = _CAMEL

    @classmethod
    def from_config(cls, config) -> "StoreResponse":
        return cls(
            tenant_id=config.tenant_id,
            status=config.status.value,
            store_name=config.store_name,
            subdomain=config.subdomain,
            currency=config.currency,
            locale=config.locale,
            theme=config.theme,
        )


class DomainResponse(BaseModel):
    tenant_id: str
    hostname: str
    is_primary: bool
    is_active: bool

    model_config = _CAMEL


class PublishStoreResponse(BaseModel):
    tenant_id: str
    hostname: str
    status: str
    published_at: datetime

    model_config = _CAMEL


def get_provisioning_service(
    db: AsyncSession = Depends(get_db),
    resolver: TenantResolver = Depends(get_tenant_resolver),
) -> ProvisioningService:
    return ProvisioningService(db, resolver)


@router.post("", response_model=StoreResponse, status_code=status.HTTP_201_CREATED)
async def create_store(
    payload: CreateStoreRequest,
    service: ProvisioningService = Depends(get_provisioning_service),
) -> StoreResponse:
    """יצירת חנות חדשה במצב Draft"""
    config = await service.create_store(payload.store_name)
    return StoreResponse.from_config(config)


@router.put("/{tenant_id}/config", response_model=StoreResponse)
async def update_store_config(
    tenant_id: str,
    payload: UpdateStoreConfigRequest,
    service: ProvisioningService = Depends(get_provisioning_service),
) -> StoreResponse:
    config = await service.update_config(
        tenant_id,
        store_name=payload.store_name,
        currency=payload.currency,
        locale=payload.locale,
        theme=payload.theme,
    )
    return StoreResponse.from_config(config)


@router.post("/{tenant_id}/domain", response_model=DomainResponse, status_code=status.HTTP_201_CREATED)
async def bind_domain(
    tenant_id: str,
    payload: BindDomainRequest,
    service: ProvisioningService = Depends(get_provisioning_service),
) -> DomainResponse:
    """קישור <subdomain>.<base domain> לחנות"""
    domain = await service.bind_domain(tenant_id, payload.subdomain)
    return DomainResponse(
        tenant_id=domain.tenant_id,
        hostname=domain.hostname,
        is_primary=domain.is_primary,
        is_active=domain.is_active,
    )


@router.post("/{tenant_id}/publish", response_model=PublishStoreResponse)
async def publish_store(
    tenant_id: str,
    service: ProvisioningService = Depends(get_provisioning_service),
) -> PublishStoreResponse:
    result = await service.publish_store(tenant_id)
    return PublishStoreResponse(
        tenant_id=result.tenant_id,
        hostname=result.hostname,
        status=result.status.value,
        published_at=result.published_at,
    )
