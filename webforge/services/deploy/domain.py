"""
Domain Service

Custom domain validation and DNS record management.

NOTE: DNS changes are kept in memory and logged; no provider API is
called. A domain counts as verified once its CNAME points at the
expected platform host.
"""
import re
import threading
from typing import Dict, List, Optional

from webforge.utils.logging import get_logger

logger = get_logger(__name__)

RECORD_TYPES = ("A", "AAAA", "CNAME", "TXT", "MX")

_DOMAIN = re.compile(
    r"^(?=.{4,253}$)(?:[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?\.)+[a-z]{2,63}$"
)


def normalize_domain(domain: str) -> str:
    return domain.strip().lower().rstrip(".")


def validate_domain(domain: str) -> bool:
    return bool(domain) and bool(_DOMAIN.match(normalize_domain(domain)))


class DomainService:
    def __init__(self):
        self._records: Dict[str, List[Dict]] = {}
        self._lock = threading.Lock()

    def upsert_dns_record(self, name: str, type: str, value: str, ttl: int = 3600) -> Dict:
        """Create or replace the record with this name and type."""
        type = type.upper()
        if type not in RECORD_TYPES:
            raise ValueError(f"Unsupported DNS record type: {type}")
        name = normalize_domain(name)
        record = {"name": name, "type": type, "value": value, "ttl": ttl}
        with self._lock:
            records = [r for r in self._records.get(name, []) if r["type"] != type]
            records.append(record)
            self._records[name] = records
        logger.info(f"Upserted DNS record {type} {name} -> {value}")
        return record

    def delete_dns_record(self, name: str, type: Optional[str] = None) -> int:
        """Delete records for a name, optionally only one type. Returns count removed."""
        name = normalize_domain(name)
        with self._lock:
            records = self._records.get(name, [])
            kept = [r for r in records if type and r["type"] != type.upper()]
            if kept:
                self._records[name] = kept
            else:
                self._records.pop(name, None)
        removed = len(records) - len(kept)
        logger.info(f"Deleted {removed} DNS records for {name}")
        return removed

    def list_dns_records(self, name: Optional[str] = None, type: Optional[str] = None) -> List[Dict]:
        with self._lock:
            records = [dict(r) for rs in self._records.values() for r in rs]
        if name:
            records = [r for r in records if r["name"].startswith(normalize_domain(name))]
        if type:
            records = [r for r in records if r["type"] == type.upper()]
        return sorted(records, key=lambda r: (r["name"], r["type"]))

    def verify_domain(self, domain: str, expected_target: str) -> bool:
        domain = normalize_domain(domain)
        target = normalize_domain(expected_target)
        verified = any(
            r["type"] == "CNAME" and normalize_domain(r["value"]) == target
            for r in self.list_dns_records(domain)
            if r["name"] == domain
        )
        logger.info(f"Domain verification for {domain}: {'ok' if verified else 'pending'}")
        return verified

    def check_domain_status(self, domain: str, expected_target: str) -> Dict:
        """
        Status is one of invalid, not_configured, pending_verification or
        active.
        """
        if not validate_domain(domain):
            return {"domain": domain, "verified": False, "status": "invalid", "records": []}

        domain = normalize_domain(domain)
        records = [r for r in self.list_dns_records(domain) if r["name"] == domain]
        if not records:
            status = "not_configured"
        elif self.verify_domain(domain, expected_target):
            status = "active"
        else:
            status = "pending_verification"
        return {
            "domain": domain,
            "verified": status == "active",
            "status": status,
            "records": records,
        }


_domain_service: Optional[DomainService] = None


def get_domain_service() -> DomainService:
    global _domain_service
    if _domain_service is None:
        _domain_service = DomainService()
    return _domain_service
