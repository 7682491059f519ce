"""
Claims timeline orchestrator: tiered strategy dispatch over the worker steps.

Tier 1 (fixed schema) runs the built-in rxTba/rxHistory/medHistory claim
types. Tier 2 (configurable schema) runs the user's claim types, or claim
types discovered from the document when the user's do not fit. Tier 3
(heuristic) takes any object holding a date and a name. A tier that does not
apply to the document is skipped; a tier that raises hands over to the next
one, and when every tier has failed the last failure propagates.
"""
from __future__ import annotations

import logging
from datetime import date
from pathlib import Path
from typing import Any, Callable, Optional, Union

from packages.shared.defaults import build_fixed_claim_types, default_parser_config
from packages.shared.errors import ParseFailure
from packages.shared.models import (
    ClaimItem,
    ClaimTypeConfig,
    ParserConfig,
    StrategyTier,
    TimelineResult,
    Warning,
)
from packages.shared.schema_validator import parse_parser_config
from packages.shared.storage import TextReader, read_text

from apps.worker.lib.heuristic_extract import has_candidate_records, heuristic_extract
from apps.worker.lib.schema_discovery import discover_claim_types
from apps.worker.steps.step00_read import decode_document, read_document
from apps.worker.steps.step01_validate import validate_structure
from apps.worker.steps.step02_extract import extract_claims
from apps.worker.steps.step03_aggregate import aggregate

logger = logging.getLogger(__name__)

# (claims, warnings, claim type order) from a tier, or None when the tier does not apply
TierOutcome = Optional[tuple[list[ClaimItem], list[Warning], list[str]]]


class ClaimsTimelineParser:
    """
    Parse claims exports into TimelineResult values.

    The configuration is the only mutable state. ``update_config`` replaces it
    wholesale (last writer wins, no locking); parses that do not overlap a
    reconfiguration are independent of each other.
    """

    def __init__(
        self,
        config: Optional[ParserConfig] = None,
        *,
        reader: TextReader = read_text,
        empty_anchor: Optional[date] = None,
    ) -> None:
        self._config = config or default_parser_config()
        self._reader = reader
        self._empty_anchor = empty_anchor

    @property
    def config(self) -> ParserConfig:
        return self._config

    def update_config(self, config: Union[ParserConfig, dict[str, Any]]) -> None:
        """Replace the configuration. Dict payloads are schema-checked (ConfigurationFailure on error)."""
        if not isinstance(config, ParserConfig):
            config = parse_parser_config(config)
        self._config = config
        logger.info(f"Parser configuration updated ({len(config.claim_types)} custom claim type(s))")

    # ── Classification ────────────────────────────────────────────────

    def classify(self, document: Any) -> StrategyTier:
        """Shape-only schema fit of *document*. Never raises."""
        config = self._config
        try:
            validate_structure(document, build_fixed_claim_types(config))
            return StrategyTier.FIXED_SCHEMA
        except ParseFailure:
            pass
        try:
            if self._configurable_claim_types(document, config):
                return StrategyTier.CONFIGURABLE_SCHEMA
        except (ParseFailure, ValueError) as exc:
            logger.debug(f"Configurable classification failed: {exc}")
        try:
            if has_candidate_records(document):
                return StrategyTier.HEURISTIC
        except (ParseFailure, ValueError) as exc:
            logger.debug(f"Heuristic classification failed: {exc}")
        return StrategyTier.NONE

    # ── Parsing ───────────────────────────────────────────────────────

    def parse(self, path: Union[str, Path]) -> TimelineResult:
        """Read, decode and parse one export. Read and JSON failures are not retried."""
        document = read_document(path, self._reader)
        return self.parse_document(document, file_path=str(path))

    def parse_text(self, text: str, file_path: Optional[str] = None) -> TimelineResult:
        return self.parse_document(decode_document(text, file_path), file_path=file_path)

    def parse_document(self, document: Any, file_path: Optional[str] = None) -> TimelineResult:
        config = self._config
        label = file_path or "<document>"
        tiers: list[tuple[StrategyTier, Callable[[Any, ParserConfig], TierOutcome]]] = [
            (StrategyTier.FIXED_SCHEMA, self._run_fixed),
            (StrategyTier.CONFIGURABLE_SCHEMA, self._run_configurable),
            (StrategyTier.HEURISTIC, self._run_heuristic),
        ]

        carried: list[Warning] = []
        failures: list[tuple[StrategyTier, ParseFailure]] = []
        pending: Optional[tuple[StrategyTier, ParseFailure]] = None
        for tier, run in tiers:
            if pending is not None:
                previous, failure = pending
                pending = None
                logger.warning(
                    f"[{label}] {previous.value} parsing failed ({failure.code}: {failure.message}); "
                    f"falling back to {tier.value}"
                )
                carried.append(Warning(
                    code="STRATEGY_FALLBACK",
                    message=f"{previous.value} parsing failed ({failure.code}): {failure.message}; "
                            f"trying {tier.value}",
                ))
            try:
                outcome = run(document, config)
            except ParseFailure as failure:
                failures.append((tier, failure))
                pending = (tier, failure)
                continue
            if outcome is None:
                logger.debug(f"[{label}] {tier.value} does not apply, skipped")
                continue

            claims, warnings, order = outcome
            logger.info(f"[{label}] Parsed with {tier.value}: {len(claims)} claims")
            return aggregate(
                claims,
                sort_direction=config.sort_direction,
                claim_type_order=order,
                warnings=carried + warnings,
                strategy=tier,
                empty_anchor=self._empty_anchor,
            )

        last_tier, last = failures[-1]
        logger.error(f"[{label}] All parsing strategies failed; last was {last_tier.value}: {last.message}")
        enriched = last.enrich(
            file_path=file_path,
            context={"strategies_tried": [t.value for t, _ in failures]},
        )
        raise enriched from last

    def get_parsing_strategy(self, path: Union[str, Path]) -> StrategyTier:
        """Tier that actually parses the file, or NONE when parsing fails outright."""
        try:
            return self.parse(path).metadata.strategy or StrategyTier.NONE
        except ParseFailure as exc:
            logger.debug(f"Strategy probe for {path} failed: {exc.code}")
            return StrategyTier.NONE

    # ── Tiers ─────────────────────────────────────────────────────────

    def _extract(self, document: Any, claim_types, config: ParserConfig, date_format: str) -> TierOutcome:
        validate_structure(document, claim_types)
        claims, warnings = extract_claims(
            document,
            claim_types,
            global_format=date_format,
            on_date_failure=config.on_date_failure,
        )
        return claims, warnings, [ct.name for ct in claim_types]

    def _run_fixed(self, document: Any, config: ParserConfig) -> TierOutcome:
        return self._extract(document, build_fixed_claim_types(config), config, config.date_format)

    def _configurable_claim_types(self, document: Any, config: ParserConfig) -> tuple[ClaimTypeConfig, ...]:
        if config.claim_types:
            try:
                validate_structure(document, config.claim_types)
                return config.claim_types
            except ParseFailure as exc:
                logger.info(f"Configured claim types do not fit this document ({exc.message}); discovering")
        return discover_claim_types(document, config.default_colors)

    def _run_configurable(self, document: Any, config: ParserConfig) -> TierOutcome:
        claim_types = self._configurable_claim_types(document, config)
        if not claim_types:
            return None
        return self._extract(document, claim_types, config, config.global_date_format)

    def _run_heuristic(self, document: Any, config: ParserConfig) -> TierOutcome:
        if not has_candidate_records(document):
            return None
        claims, warnings = heuristic_extract(document, config.default_colors)
        return claims, warnings, []
