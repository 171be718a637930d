from dataclasses import dataclass

import jwt
from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from portal.auth import jwt_handler
from portal.models.client import Client
from portal.routes.common import get_db

security = HTTPBearer()


@dataclass
class PortalSession:
    client_id: int
    team_id: int
    client_name: str
    client_email: str | None


def get_portal_session(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
) -> PortalSession:
    token = credentials.credentials
    try:
        payload = jwt_handler.decode_access_token(token)
    except jwt.PyJWTError as exc:
        raise HTTPException(status_code=401, detail="Invalid token") from exc

    try:
        client_id = int(payload.get("sub"))
        team_id = int(payload.get("team_id"))
    except (TypeError, ValueError) as exc:
        raise HTTPException(status_code=401, detail="Invalid token subject") from exc

    client = db.query(Client).filter(
        Client.id == client_id,
        Client.team_id == team_id,
        Client.portal_enabled.is_(True),
    ).first()
    if client is None:
        raise HTTPException(status_code=401, detail="Client not found")

    return PortalSession(
        client_id=client.id,
        team_id=client.team_id,
        client_name=client.name,
        client_email=client.email,
    )
