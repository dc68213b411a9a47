"""
Integrations Router

Lets a signed-in user list, connect and remove wearable integrations.
Connection completes asynchronously: the vendor's webhook (Vital
``user.connected`` / Terra ``auth``) creates the Integration row.
"""

from typing import Any, Dict, List, Optional
from uuid import UUID
import logging

import requests
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from core.auth import get_current_user_id
from core.database import get_db
from core.exceptions import ForbiddenError, NotFoundError, UpstreamError, VendorAPIError
from models import Integration, IntegrationProvider
from schemas import ConnectRequest, IntegrationResponse, TerraConnectRequest
from services.terra_client import TerraClient, get_optional_terra_client, get_terra_client
from services.vital_client import VitalClient, get_optional_vital_client, get_vital_client

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/integrations", tags=["integrations"])


@router.get("", response_model=List[IntegrationResponse])
def list_integrations(
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    return (
        db.query(Integration)
        .filter(Integration.user_id == user_id)
        .order_by(Integration.connected_at.desc())
        .all()
    )


@router.post("/connect")
def connect_integration(
    request: ConnectRequest,
    user_id: str = Depends(get_current_user_id),
    client: VitalClient = Depends(get_vital_client),
) -> Dict[str, Any]:
    """
    Start a provider connection.

    Only Vital is wired up here; Terra has its own widget endpoint below.
    """
    if request.provider != IntegrationProvider.VITAL.value:
        raise HTTPException(
            status_code=status.HTTP_501_NOT_IMPLEMENTED,
            detail=f"Provider {request.provider} not yet implemented",
        )

    try:
        token = client.create_link_token(user_id)
    except (VendorAPIError, requests.RequestException) as e:
        logger.error(f"Vital link token failed for user {user_id}: {e}")
        raise UpstreamError("Failed to create Vital link token")

    link_token = token.get("link_token")
    logger.info(f"Generated Vital link token for user {user_id}")
    return {"auth_url": client.link_url(link_token), "link_token": link_token}


@router.post("/terra/connect")
def connect_terra(
    request: TerraConnectRequest,
    user_id: str = Depends(get_current_user_id),
    client: TerraClient = Depends(get_terra_client),
) -> Dict[str, Any]:
    try:
        session = client.generate_widget_session(user_id, request.providers)
    except (VendorAPIError, requests.RequestException) as e:
        logger.error(f"Terra widget session failed for user {user_id}: {e}")
        raise UpstreamError("Failed to create Terra widget session")

    logger.info(f"Generated Terra widget session for user {user_id}: {session.get('session_id')}")
    return {"url": session.get("url"), "session_id": session.get("session_id")}


def _revoke_with_vendor(
    integration: Integration,
    terra: Optional[TerraClient],
    vital: Optional[VitalClient],
) -> None:
    """Best effort: a vendor failure must not block local removal."""
    try:
        if integration.provider == IntegrationProvider.TERRA.value and integration.provider_user_id:
            if terra is None:
                logger.warning(f"Terra not configured; integration {integration.id} not deauthenticated with Terra")
                return
            terra.deauthenticate_user(integration.provider_user_id)
        elif integration.provider == IntegrationProvider.VITAL.value:
            vital_provider = (integration.meta or {}).get("vital_provider")
            if not vital_provider:
                return
            if vital is None:
                logger.warning(f"Vital not configured; integration {integration.id} not disconnected at Vital")
                return
            vital.disconnect_provider(integration.user_id, vital_provider)
    except (VendorAPIError, requests.RequestException) as e:
        logger.warning(f"Vendor deauthorization failed for integration {integration.id}: {e}")


@router.delete("/{integration_id}")
def delete_integration(
    integration_id: UUID,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    terra: Optional[TerraClient] = Depends(get_optional_terra_client),
    vital: Optional[VitalClient] = Depends(get_optional_vital_client),
) -> Dict[str, Any]:
    integration = db.get(Integration, integration_id)
    if integration is None:
        raise NotFoundError("Integration", str(integration_id))
    if integration.user_id != user_id:
        raise ForbiddenError()

    _revoke_with_vendor(integration, terra, vital)

    db.delete(integration)
    db.commit()
    logger.info(f"Deleted integration {integration_id} ({integration.provider}) for user {user_id}")
    return {"success": True}
