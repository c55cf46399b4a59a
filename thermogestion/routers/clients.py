from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import or_
from sqlalchemy.orm import Session

from thermogestion.auth.deps import get_current_user
from thermogestion.db import get_db
from thermogestion.models.client import Client
from thermogestion.models.user import User
from thermogestion.routers.common import get_owned_or_404
from thermogestion.schemas.crm import ClientIn, ClientOut
from thermogestion.services import audit

router = APIRouter(prefix="/api/clients", tags=["clients"])


@router.get("", response_model=List[ClientOut])
def list_clients(
    q: Optional[str] = Query(None, description="Search on name, email or phone"),
    limit: int = Query(100, ge=1, le=500),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    query = db.query(Client).filter(Client.tenant_id == user.tenant_id)
    if q:
        like = f"%{q.strip()}%"
        query = query.filter(
            or_(Client.full_name.ilike(like), Client.email.ilike(like), Client.phone.ilike(like))
        )
    return query.order_by(Client.full_name).limit(limit).all()


@router.post("", response_model=ClientOut, status_code=201)
def create_client(payload: ClientIn, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    client = Client(tenant_id=user.tenant_id, **payload.model_dump())
    db.add(client)
    db.flush()
    audit.record(
        db,
        tenant_id=user.tenant_id,
        actor=user.id,
        action="create",
        target_type="client",
        target_id=client.id,
        new={"full_name": client.full_name},
    )
    db.commit()
    db.refresh(client)
    return client


@router.get("/{client_id}", response_model=ClientOut)
def get_client(client_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return get_owned_or_404(db, Client, client_id, user.tenant_id, "Client not found")


@router.put("/{client_id}", response_model=ClientOut)
def update_client(
    client_id: int,
    payload: ClientIn,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    client = get_owned_or_404(db, Client, client_id, user.tenant_id, "Client not found")
    for key, value in payload.model_dump().items():
        setattr(client, key, value)
    db.commit()
    db.refresh(client)
    return client


@router.delete("/{client_id}", status_code=204)
def delete_client(client_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    client = get_owned_or_404(db, Client, client_id, user.tenant_id, "Client not found")
    audit.record(
        db,
        tenant_id=user.tenant_id,
        actor=user.id,
        action="delete",
        target_type="client",
        target_id=client.id,
        old={"full_name": client.full_name},
    )
    db.delete(client)
    db.commit()
