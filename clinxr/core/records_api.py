"""
Clinical Records API
====================

Typed wrappers over the three backend clients. The form and immersive views
call these instead of building URLs themselves.

Endpoints:
    primary     /api/patients, /api/patients/{id}, /api/patients/{id}/vital-signs
    genomic     /api/rsids/{id}, /api/snps/{id}/{rsid}, /api/studies/{id}, /api/study/{id}
    aggregator  /api/upload/{id}
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from clinxr.core.backend_client import BackendClient, BackendClientFactory
from clinxr.core.config import BACKEND_AGGREGATOR, BACKEND_GENOMIC, BACKEND_PRIMARY


# ============================================================================
# DATA CLASSES
# ============================================================================

@dataclass(frozen=True)
class PatientSummary:
    """Read-only projection of a patient used for listing and selection."""
    id: Union[int, str]
    name: str
    age: Optional[int] = None
    address: str = ""
    extra: Dict[str, Any] = field(default_factory=dict, compare=False, hash=False)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PatientSummary":
        known = {"id", "name", "age", "address"}
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            age=data.get("age"),
            address=data.get("address") or "",
            extra={k: v for k, v in data.items() if k not in known},
        )


@dataclass(frozen=True)
class VitalSign:
    """One recorded vital sign measurement."""
    id: Union[int, str]
    type: str
    value: Any
    timestamp: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "VitalSign":
        return cls(
            id=data.get("id", ""),
            type=data.get("type", ""),
            value=data.get("value"),
            timestamp=data.get("timestamp", ""),
        )


# ============================================================================
# SUB-API CLASSES
# ============================================================================

class BaseAPI:
    """Base class for sub-APIs bound to one backend client."""

    def __init__(self, client: BackendClient):
        self.client = client

    def _json(self, method: str, path: str, **kwargs) -> Any:
        response = self.client.request(method, path, **kwargs)
        if not response.content:
            return None
        return response.json()


class PatientsAPI(BaseAPI):
    """Patient records on the primary backend."""

    def list(self) -> List[PatientSummary]:
        data = self._json("GET", "/api/patients") or []
        return [PatientSummary.from_dict(item) for item in data]

    def get(self, patient_id) -> Dict[str, Any]:
        return self._json("GET", f"/api/patients/{patient_id}")

    def create(self, name: str, age: int, address: str) -> Optional[Dict[str, Any]]:
        return self._json("POST", "/api/patients", json={"name": name, "age": age, "address": address})

    def update(self, patient_id, name: str, age: int, address: str) -> Optional[Dict[str, Any]]:
        return self._json("PUT", f"/api/patients/{patient_id}",
                          json={"name": name, "age": age, "address": address})


class VitalSignsAPI(BaseAPI):
    """Vital sign measurements on the primary backend."""

    def list(self, patient_id) -> List[VitalSign]:
        data = self._json("GET", f"/api/patients/{patient_id}/vital-signs") or []
        return [VitalSign.from_dict(item) for item in data]

    def add(self, patient_id, vital: Dict[str, Any]) -> Optional[VitalSign]:
        data = self._json("POST", f"/api/patients/{patient_id}/vital-signs", json=vital)
        return VitalSign.from_dict(data) if isinstance(data, dict) else None

    def delete(self, patient_id, vital_sign_id) -> None:
        self.client.delete(f"/api/patients/{patient_id}/vital-signs/{vital_sign_id}")


class GenomicsAPI(BaseAPI):
    """SNP lookups and genomic studies on the genomic backend."""

    def rsids(self, patient_id) -> List[str]:
        return self._json("GET", f"/api/rsids/{patient_id}") or []

    def snp(self, patient_id, rsid: str) -> Dict[str, Any]:
        return self._json("GET", f"/api/snps/{patient_id}/{rsid}")

    def studies(self, patient_id) -> List[Dict[str, Any]]:
        return self._json("GET", f"/api/studies/{patient_id}") or []

    def add_study(self, patient_id, study: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        return self._json("POST", f"/api/study/{patient_id}", json=study)


class DocumentsAPI(BaseAPI):
    """Document upload on the aggregator backend."""

    def upload(self, patient_id, file_path: Union[str, Path]) -> Any:
        path = Path(file_path)
        with open(path, "rb") as f:
            return self._json("POST", f"/api/upload/{patient_id}", files={"file": (path.name, f)})


class RecordsAPI:
    """
    Entry point bundling every sub-API.

    Attributes:
        patients: PatientsAPI - patient CRUD
        vital_signs: VitalSignsAPI - vital sign CRUD
        genomics: GenomicsAPI - SNPs and studies
        documents: DocumentsAPI - file upload
    """

    def __init__(self, factory: BackendClientFactory):
        self.patients = PatientsAPI(factory.client_for(BACKEND_PRIMARY))
        self.vital_signs = VitalSignsAPI(factory.client_for(BACKEND_PRIMARY))
        self.genomics = GenomicsAPI(factory.client_for(BACKEND_GENOMIC))
        self.documents = DocumentsAPI(factory.client_for(BACKEND_AGGREGATOR))
