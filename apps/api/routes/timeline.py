"""
API route: Timeline
"""
from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter
from pydantic import BaseModel

from apps.worker.pipeline import ClaimsTimelineParser
from packages.shared.models import ParserConfig, StrategyTier
from packages.shared.schema_validator import parse_parser_config

router = APIRouter(prefix="/timeline", tags=["timeline"])


class TimelineRequest(BaseModel):
    document: Any = None
    config: Optional[dict[str, Any]] = None


class ClassifyResponse(BaseModel):
    strategy: StrategyTier


def _parser(config: Optional[dict[str, Any]]) -> ClaimsTimelineParser:
    if config is None:
        return ClaimsTimelineParser(ParserConfig())
    return ClaimsTimelineParser(parse_parser_config(config))


@router.post("")
def build_timeline(req: TimelineRequest) -> dict[str, Any]:
    """Parse an inline claims document into a timeline payload."""
    result = _parser(req.config).parse_document(req.document)
    return result.to_payload()


@router.post("/classify", response_model=ClassifyResponse)
def classify_document(req: TimelineRequest):
    return ClassifyResponse(strategy=_parser(req.config).classify(req.document))
