"""SQLAlchemy directory of customers and staff users."""

from typing import Optional

from sqlalchemy.orm import sessionmaker

from database.connection import session_scope
from database.models import CustomerRecord, UserRecord
from domain import Customer, IDirectory, StaffUser, UserRole, utcnow


class DirectoryRepository(IDirectory):
    """Customer and user lookups, plus inserts used when seeding data."""

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def get_customer(self, customer_id: str) -> Optional[Customer]:
        with session_scope(self._session_factory) as session:
            record = session.get(CustomerRecord, customer_id)
            if record is None:
                return None
            return Customer(
                id=record.id,
                contact_name=record.contact_name,
                email=record.email,
                company_name=record.company_name,
                phone=record.phone,
            )

    def get_user(self, user_id: str) -> Optional[StaffUser]:
        with session_scope(self._session_factory) as session:
            record = session.get(UserRecord, user_id)
            if record is None:
                return None
            return StaffUser(id=record.id, name=record.name, email=record.email, role=UserRole(record.role))

    def add_customer(self, customer: Customer) -> Customer:
        with session_scope(self._session_factory) as session:
            session.add(CustomerRecord(created_at=utcnow(), **customer.model_dump()))
        return customer

    def add_user(self, user: StaffUser) -> StaffUser:
        with session_scope(self._session_factory) as session:
            session.add(UserRecord(
                id=user.id,
                name=user.name,
                email=user.email,
                role=user.role.value,
                created_at=utcnow(),
            ))
        return user
