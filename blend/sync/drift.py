"""Drift detection -- compare cached blend manifests with their upstream copies.

A blend drifts when its tap ships a manifest whose content differs from the
copy cached at install time. A blend whose upstream manifest has vanished
is *orphaned*: it can no longer be upgraded but keeps working as installed.
"""

from __future__ import annotations

import hashlib
import logging

from blend.errors import UpgradeFailed
from blend.models import DriftReport, DriftState, UpdateSummary
from blend.registry.locator import BlendLocator
from blend.store.local_store import BlendStore

logger = logging.getLogger(__name__)


class ContentDiffer:
    """Content equality of manifests by SHA-256 digest."""

    @staticmethod
    def digest(data: bytes) -> str:
        return hashlib.sha256(data).hexdigest()

    def has_drifted(self, local: bytes, upstream: bytes) -> bool:
        return self.digest(local) != self.digest(upstream)


class DriftDetector:
    """Classifies installed blends as up to date, drifted or orphaned."""

    def __init__(self, store: BlendStore, locator: BlendLocator, differ: ContentDiffer | None = None):
        self.store = store
        self.locator = locator
        self.differ = differ or ContentDiffer()

    def check(self, name: str) -> DriftReport:
        """Check one installed blend.

        Raises:
            BlendNotInstalled: The blend is not in the store.
            UpgradeFailed: A manifest exists but could not be read.
        """
        try:
            local = self.store.read_cached_manifest(name)
        except FileNotFoundError:
            # Left behind by an upgrade that failed between remove and copy
            logger.warning("Blend '%s' has no cached manifest", name)
            local = b""
        except OSError as e:
            raise UpgradeFailed(f"Could not read cached manifest for blend '{name}': {e}") from e
        local_digest = self.differ.digest(local)

        upstream_path = self.locator.resolve(name)
        if upstream_path is None:
            return DriftReport(
                blend_name=name,
                state=DriftState.ORPHANED,
                local_digest=local_digest,
            )

        try:
            upstream = upstream_path.read_bytes()
        except OSError as e:
            raise UpgradeFailed(f"Could not read upstream manifest for blend '{name}': {e}") from e
        upstream_digest = self.differ.digest(upstream)
        state = DriftState.UP_TO_DATE if upstream_digest == local_digest else DriftState.DRIFTED
        return DriftReport(
            blend_name=name,
            state=state,
            local_digest=local_digest,
            upstream_digest=upstream_digest,
            upstream_path=upstream_path,
        )

    def check_all(self) -> UpdateSummary:
        """Check every installed blend and sort the names by outcome."""
        summary = UpdateSummary()
        for name in self.store.list():
            report = self.check(name)
            if report.state == DriftState.DRIFTED:
                summary.drifted.append(name)
            elif report.state == DriftState.ORPHANED:
                summary.orphaned.append(name)
            else:
                summary.up_to_date.append(name)
        return summary
