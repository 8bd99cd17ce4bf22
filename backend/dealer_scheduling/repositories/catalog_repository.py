# backend/dealer_scheduling/repositories/catalog_repository.py
"""Lookups into vehicles, service types and customers."""

import logging
from typing import List, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.catalog import Customer, ServiceType, Vehicle
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class CatalogRepository(BaseRepository[Vehicle]):
    def __init__(self, db: Session):
        super().__init__(db, Vehicle)
        self.logger = logging.getLogger(__name__)

    def get_vehicle(self, vehicle_id: str) -> Optional[Vehicle]:
        return self.get_by_id(vehicle_id)

    def get_service_types(self, service_type_ids: Sequence[str]) -> List[ServiceType]:
        """Service types for the given ids, in the order the ids were given. Unknown ids are skipped."""
        if not service_type_ids:
            return []
        try:
            found = {
                st.id: st
                for st in self.db.query(ServiceType)
                .filter(ServiceType.id.in_(list(service_type_ids)))
                .all()
            }
        except SQLAlchemyError as e:
            self.logger.error(f"Error loading service types: {str(e)}")
            raise RepositoryException(f"Failed to load service types: {str(e)}") from e
        return [found[sid] for sid in service_type_ids if sid in found]

    def get_customer_by_email(self, email: str) -> Optional[Customer]:
        try:
            return self.db.query(Customer).filter(Customer.email == email.lower()).first()
        except SQLAlchemyError as e:
            self.logger.error(f"Error loading customer: {str(e)}")
            raise RepositoryException(f"Failed to load customer: {str(e)}") from e

    def find_or_create_customer(
        self, *, name: str, email: str, phone: str, license_number: Optional[str] = None
    ) -> Customer:
        """
        Resolve booking contact details to a customer row.

        Existing customers keep their stored name and phone; a missing
        license number is filled in from the request.
        """
        customer = self.get_customer_by_email(email)
        if customer is not None:
            if license_number and not customer.license_number:
                customer.license_number = license_number
            return customer
        try:
            customer = Customer(
                name=name,
                email=email.lower(),
                phone=phone,
                license_number=license_number,
            )
            self.db.add(customer)
            self.db.flush()
            return customer
        except SQLAlchemyError as e:
            self.logger.error(f"Error creating customer: {str(e)}")
            raise RepositoryException(f"Failed to create customer: {str(e)}") from e
