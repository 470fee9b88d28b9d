"""
validatebag -- BagIt Rules

BagIt conformance is delegated to the ``bagit`` library; these rules only
translate its findings into rule outcomes.
"""

from __future__ import annotations

import bagit
import structlog

from validatebag.systems.validation.target import TargetBag
from validatebag.systems.validation.types import SUCCESS, RuleOutcome, violation

logger = structlog.get_logger()


def bag_is_valid(t: TargetBag) -> RuleOutcome:
    """Structure, manifests, checksums and Payload-Oxum."""
    try:
        bag = bagit.Bag(str(t.bag_dir))
        bag.validate()
    except bagit.BagValidationError as e:
        details = "; ".join(str(d) for d in e.details) if e.details else ""
        logger.info("bag_invalid", error=e.message, details=len(e.details or []))
        return violation(f"Bag is not valid: {e.message}" + (f" ({details})" if details else ""))
    except bagit.BagError as e:
        logger.info("bag_invalid", error=str(e))
        return violation(f"Bag is not valid: {e}")
    return SUCCESS


def bag_sha1_payload_manifest_contains_all_payload_files(t: TargetBag) -> RuleOutcome:
    try:
        bag = bagit.Bag(str(t.bag_dir))
    except bagit.BagError as e:
        return violation(f"Bag is not valid: {e}")
    with_sha1 = {
        path.replace("\\", "/")
        for path, hashes in bag.payload_entries().items()
        if "sha1" in hashes
    }
    missing = sorted(t.payload_paths() - with_sha1)
    if missing:
        return violation(
            "All payload files must have an SHA-1 checksum. "
            f"Files missing from SHA-1 manifest: {', '.join(missing)}"
        )
    return SUCCESS
