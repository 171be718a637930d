from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from portal.auth import jwt_handler
from portal.auth.dependencies import PortalSession, get_portal_session
from portal.routes.common import database_unavailable, get_db
from portal.routes.schemas import ClientResponse, PortalLoginRequest, PortalLoginResponse
from portal.scheduling.clients import authenticate_portal_code
from portal.scheduling.errors import NotFoundError, SchedulingError

router = APIRouter(tags=['auth'])


@router.post('/portal', response_model=PortalLoginResponse)
def portal_login(data: PortalLoginRequest, db: Session = Depends(get_db)):
    try:
        client = authenticate_portal_code(db, data.portal_code)
    except NotFoundError as exc:
        raise HTTPException(status_code=401, detail=exc.reason) from exc
    except SchedulingError as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.reason) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable(db, exc) from exc

    token, expires_at = jwt_handler.create_portal_token(client.id, client.team_id)
    return PortalLoginResponse(
        access_token=token,
        expires_at=expires_at,
        client=ClientResponse.model_validate(client),
    )


@router.get('/me')
def me(session: PortalSession = Depends(get_portal_session)):
    return {'client_id': session.client_id, 'team_id': session.team_id, 'name': session.client_name, 'email': session.client_email}
