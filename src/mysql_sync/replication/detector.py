"""
Change detection: decide whether a table pair needs a data sync.

Strategies:
- count: compare row counts
- checksum: compare ``CHECKSUM TABLE`` results
- update_time: compare ``MAX(update_field)`` on both sides

An unknown method, or update_time whose column is missing on the source,
falls back to checksum. Query failures raise DetectionError; they never
count as "no sync needed".
"""

import logging
from typing import Any, NamedTuple

from ..config import CHECK_METHODS, TablePairConfig
from ..db.catalog import Catalog
from ..errors import DetectionError, MySQLSyncError

logger = logging.getLogger(__name__)

FALLBACK_METHOD = "checksum"


class ChangeDecision(NamedTuple):
    method: str
    sync_needed: bool
    source_value: Any = None
    target_value: Any = None


class ChangeDetector:
    """Run the configured drift check for a table pair."""

    def __init__(self, source: Catalog, target: Catalog):
        self.source = source
        self.target = target

    def resolve_method(self, pair: TablePairConfig) -> str:
        """
        Pick the strategy that will actually run for this pair

        The update_time column is re-checked against the source catalog on
        every call; configuration alone is not trusted.
        """
        method = pair.check_method
        if method not in CHECK_METHODS:
            logger.warning(
                f"{pair.source}: unknown check method '{method}', using {FALLBACK_METHOD}"
            )
            return FALLBACK_METHOD

        if method == "update_time":
            if not pair.update_field:
                logger.warning(f"{pair.source}: update_time without update_field, "
                               f"using {FALLBACK_METHOD}")
                return FALLBACK_METHOD
            if not self.source.has_column(pair.source, pair.update_field):
                logger.warning(
                    f"{pair.source}: column '{pair.update_field}' not found in source, "
                    f"using {FALLBACK_METHOD}"
                )
                return FALLBACK_METHOD

        return method

    def _check_count(self, pair: TablePairConfig) -> ChangeDecision:
        source_count = self.source.count_rows(pair.source)
        target_count = self.target.count_rows(pair.target)
        return ChangeDecision("count", source_count != target_count, source_count, target_count)

    def _check_checksum(self, pair: TablePairConfig) -> ChangeDecision:
        source_checksum = self.source.checksum(pair.source)
        target_checksum = self.target.checksum(pair.target)
        if source_checksum is None or target_checksum is None:
            raise DetectionError(
                f"CHECKSUM TABLE returned no value for {pair.source} -> {pair.target}"
            )
        return ChangeDecision(
            "checksum", source_checksum != target_checksum, source_checksum, target_checksum
        )

    def _check_update_time(self, pair: TablePairConfig) -> ChangeDecision:
        source_max = self.source.max_value(pair.source, pair.update_field)
        target_max = self.target.max_value(pair.target, pair.update_field)
        return ChangeDecision("update_time", source_max != target_max, source_max, target_max)

    def detect(self, pair: TablePairConfig) -> ChangeDecision:
        """
        Decide whether ``pair`` needs a data sync

        Raises:
            DetectionError: If any detection query fails
        """
        checks = {
            "count": self._check_count,
            "checksum": self._check_checksum,
            "update_time": self._check_update_time,
        }
        try:
            method = self.resolve_method(pair)
            decision = checks[method](pair)
        except DetectionError:
            raise
        except MySQLSyncError as e:
            raise DetectionError(
                f"Change detection failed for {pair.source} -> {pair.target}: {e}"
            ) from e

        logger.info(
            f"{pair.source} -> {pair.target}: {decision.method} "
            f"source={decision.source_value} target={decision.target_value} "
            f"sync_needed={decision.sync_needed}"
        )
        return decision
