#!/usr/bin/env python3
"""
End-to-end check of a running intake deployment.

Steps:
1. POST /api/v1/intake with a known-good payload
2. Verify the leads row (status NEW, priority > 0, sla_due_at set)
3. POST /api/v1/uploads with a tiny JPEG
4. Verify the object exists in the storage bucket under leads/<lead_id>/
5. Verify the lead_files row
6. Mark the test lead as SPAM so it leaves the operator queue

Requires SUPABASE_URL / SUPABASE_KEY (service role) for the verification reads.

Usage:
  python scripts/e2e_intake_check.py --base-url http://localhost:8000
"""

from __future__ import annotations

import argparse
import base64
import sys
import time
from pathlib import Path
from typing import Dict, Optional
from uuid import UUID

import httpx

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from api.config import get_settings
from domain.lead import LeadStatus
from domain.time import utc_now
from repositories.client import get_supabase
from repositories.lead_file_repository import list_files_for_lead
from repositories.lead_repository import get_lead_by_id, update_lead_fields

# 1x1 baseline JPEG
MINIMAL_JPEG = bytes.fromhex(
    "ffd8ffe000104a46494600010100000100010000ffdb004300080606070605080707070909080a0c140d0c0b0b0c1912"
    "130f141d1a1f1e1d1a1c1c20242e2720222c231c1c2837292c30313434341f27393d38323c2e333432ffc0000b080001"
    "000101011100ffc4001f0000010501010101010100000000000000000102030405060708090a0bffc400b51000020103"
    "03020403050504040000017d01020300041105122131410613516107227114328191a1082342b1c11552d1f024336272"
    "82090a161718191a25262728292a3435363738393a434445464748494a535455565758595a636465666768696a737475"
    "767778797a838485868788898a92939495969798999aa2a3a4a5a6a7a8a9aab2b3b4b5b6b7b8b9bac2c3c4c5c6c7c8c9"
    "cad2d3d4d5d6d7d8d9dae1e2e3e4e5e6e7e8e9eaf1f2f3f4f5f6f7f8f9faffda0008010100003f00fbd5db20a8a8a802"
    "8a2803ffd9"
)


def build_test_payload() -> Dict[str, object]:
    return {
        "lang": "FR",
        "source": "e2e-test",
        "pest_category": "test-e2e",
        "pest_detail": "cafards",
        "urgency": "IMMEDIATE",
        "postal_code": "1000",
        "city": "Bruxelles",
        "description": f"AUTOMATED E2E TEST - {utc_now().isoformat()}",
        "contact_method": "WHATSAPP",
        "phone": "+32466274251",
        "hp": "",
    }


class CheckRun:
    def __init__(self) -> None:
        self.results: Dict[str, tuple[bool, str]] = {}

    def record(self, name: str, passed: bool, details: str) -> bool:
        self.results[name] = (passed, details)
        print(f"   {'✓' if passed else '✗'} {name}: {details}")
        return passed

    @property
    def all_passed(self) -> bool:
        return bool(self.results) and all(passed for passed, _ in self.results.values())


def check_intake(http: httpx.Client, base_url: str, run: CheckRun) -> Optional[UUID]:
    print("1. Submitting intake...")
    response = http.post(f"{base_url}/api/v1/intake", json=build_test_payload())
    try:
        data = response.json()
    except ValueError:
        run.record("intake", False, f"non-JSON response (HTTP {response.status_code})")
        return None

    if response.status_code != 200 or data.get("ok") is not True:
        run.record("intake", False, f"HTTP {response.status_code}: {data}")
        return None

    try:
        lead_id = UUID(str(data.get("lead_id")))
    except ValueError:
        run.record("intake", False, f"lead_id is not a UUID: {data.get('lead_id')}")
        return None

    run.record("intake", True, f"lead_id={lead_id} priority_score={data.get('priority_score')}")
    return lead_id


def check_leads_table(lead_id: UUID, run: CheckRun) -> bool:
    print("2. Verifying leads row...")
    lead = get_lead_by_id(lead_id)
    if lead is None:
        return run.record("leads_table", False, "row not found")
    if lead.status != LeadStatus.NEW:
        return run.record("leads_table", False, f"expected status NEW, got {lead.status.value}")
    if lead.priority_score <= 0:
        return run.record("leads_table", False, f"expected priority_score > 0, got {lead.priority_score}")
    return run.record("leads_table", True, f"priority={lead.priority_score} sla_due_at={lead.sla_due_at.isoformat()}")


def check_upload(http: httpx.Client, base_url: str, lead_id: UUID, run: CheckRun) -> bool:
    print("3. Uploading test image...")
    payload = {
        "lead_id": str(lead_id),
        "file_name": "e2e-test.jpg",
        "file_data": "data:image/jpeg;base64," + base64.b64encode(MINIMAL_JPEG).decode("ascii"),
        "mime_type": "image/jpeg",
    }
    response = http.post(f"{base_url}/api/v1/uploads", json=payload)
    try:
        data = response.json()
    except ValueError:
        return run.record("upload", False, f"non-JSON response (HTTP {response.status_code})")
    if response.status_code != 200 or data.get("ok") is not True:
        return run.record("upload", False, f"HTTP {response.status_code}: {data}")
    return run.record("upload", True, str(data.get("storage_path")))


def check_storage(bucket: str, lead_id: UUID, run: CheckRun) -> bool:
    print("4. Listing storage objects...")
    objects = get_supabase().storage.from_(bucket).list(f"leads/{lead_id}")
    if not objects:
        return run.record("storage_bucket", False, f"no objects under leads/{lead_id}")
    return run.record("storage_bucket", True, f"{len(objects)} object(s)")


def check_lead_files(lead_id: UUID, run: CheckRun) -> bool:
    print("5. Verifying lead_files rows...")
    files = list_files_for_lead(lead_id)
    if not files:
        return run.record("lead_files_table", False, "no rows")
    if f"leads/{lead_id}" not in files[0].storage_path:
        return run.record("lead_files_table", False, f"unexpected storage_path {files[0].storage_path}")
    return run.record("lead_files_table", True, files[0].storage_path)


def cleanup(lead_id: UUID) -> None:
    print("6. Cleanup: marking test lead as SPAM...")
    try:
        update_lead_fields(lead_id, {"status": LeadStatus.SPAM}, updated_at=utc_now())
        print("   ✓ Test lead marked as SPAM")
    except RuntimeError as e:
        print(f"   Could not mark lead as SPAM (non-critical): {e}")


def main() -> int:
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        description="End-to-end check of the intake and upload endpoints",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Local server
  python e2e_intake_check.py --base-url http://localhost:8000

  # Keep the test lead in the queue
  python e2e_intake_check.py --base-url https://intake.example.be --no-cleanup
        """
    )
    parser.add_argument("--base-url", default="http://localhost:8000", help="Base URL of the intake API")
    parser.add_argument("--no-cleanup", action="store_true", help="Leave the test lead with status NEW")
    args = parser.parse_args()

    base_url = args.base_url.rstrip("/")
    bucket = get_settings().storage_bucket

    print("=" * 60)
    print("INTERVENTIA E2E INTAKE CHECK")
    print("=" * 60)
    print(f"API: {base_url}")
    print(f"Bucket: {bucket}")
    print()

    run = CheckRun()
    with httpx.Client(timeout=30.0) as http:
        lead_id = check_intake(http, base_url, run)
        if lead_id is not None:
            time.sleep(0.5)
            check_leads_table(lead_id, run)
            if check_upload(http, base_url, lead_id, run):
                time.sleep(1.0)
                check_storage(bucket, lead_id, run)
                check_lead_files(lead_id, run)
            if not args.no_cleanup:
                cleanup(lead_id)

    print()
    print("=" * 60)
    if run.all_passed and len(run.results) == 5:
        print("✓ ALL CHECKS PASSED")
        return 0
    print("✗ SOME CHECKS FAILED")
    return 1


if __name__ == "__main__":
    sys.exit(main())
