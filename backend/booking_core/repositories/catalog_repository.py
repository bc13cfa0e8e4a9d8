"""Read-only access to the reference catalog (providers, packages, patients, service types)."""

import logging
from typing import Dict, Iterable, Optional

from sqlalchemy.orm import Session

from ..models.catalog import Package, Patient, Provider, ServiceType

logger = logging.getLogger(__name__)


class CatalogRepository:
    """Lookups across the catalog tables; the engine never writes to them."""

    def __init__(self, db: Session):
        self.db = db

    def get_provider(self, provider_id: str) -> Optional[Provider]:
        return self.db.get(Provider, provider_id)

    def get_providers(self, provider_ids: Iterable[str]) -> Dict[str, Provider]:
        ids = set(provider_ids)
        if not ids:
            return {}
        rows = self.db.query(Provider).filter(Provider.id.in_(ids)).all()
        return {row.id: row for row in rows}

    def get_package(self, package_id: str) -> Optional[Package]:
        return self.db.get(Package, package_id)

    def get_patient(self, patient_id: str) -> Optional[Patient]:
        return self.db.get(Patient, patient_id)

    def get_service_type(self, service_type_id: str) -> Optional[ServiceType]:
        return self.db.get(ServiceType, service_type_id)

    def get_service_types(self, service_type_ids: Iterable[str]) -> Dict[str, ServiceType]:
        ids = set(service_type_ids)
        if not ids:
            return {}
        rows = self.db.query(ServiceType).filter(ServiceType.id.in_(ids)).all()
        return {row.id: row for row in rows}
