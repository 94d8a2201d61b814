"""
Clients & Manufacturers API Endpoints
"""
from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from orderhub.api.v1.deps import CurrentActor
from orderhub.db.session import get_db
from orderhub.schemas.party import ClientCreate, ClientResponse, ManufacturerCreate, ManufacturerResponse
from orderhub.services import party_service

router = APIRouter(tags=["Parties"])


# ============================================================================
# CLIENTS
# ============================================================================

@router.get("/clients", response_model=List[ClientResponse])
def list_clients(actor: CurrentActor, db: Session = Depends(get_db)):
    return party_service.list_clients(db, actor)


@router.post("/clients", response_model=ClientResponse, status_code=status.HTTP_201_CREATED)
def create_client(data: ClientCreate, actor: CurrentActor, db: Session = Depends(get_db)):
    return party_service.create_client(db, actor, data)


@router.delete("/clients/{client_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_client(client_id: int, actor: CurrentActor, db: Session = Depends(get_db)):
    """Delete a client. Refused with 409 while the client has orders."""
    party_service.delete_client(db, actor, client_id)


# ============================================================================
# MANUFACTURERS
# ============================================================================

@router.get("/manufacturers", response_model=List[ManufacturerResponse])
def list_manufacturers(actor: CurrentActor, db: Session = Depends(get_db)):
    return party_service.list_manufacturers(db, actor)


@router.post("/manufacturers", response_model=ManufacturerResponse, status_code=status.HTTP_201_CREATED)
def create_manufacturer(data: ManufacturerCreate, actor: CurrentActor, db: Session = Depends(get_db)):
    return party_service.create_manufacturer(db, actor, data)


@router.delete("/manufacturers/{manufacturer_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_manufacturer(manufacturer_id: int, actor: CurrentActor, db: Session = Depends(get_db)):
    """Delete a manufacturer. Refused with 409 while the manufacturer has orders."""
    party_service.delete_manufacturer(db, actor, manufacturer_id)
