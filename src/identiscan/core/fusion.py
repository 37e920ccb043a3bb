"""
Result Fusion - Deduplication and confidence scoring across sources.

Takes the raw findings a scan collected from all sources and produces one
deduplicated list, rescored against the query and ranked by confidence.

Strategy:
1. Group findings by their first non-empty identity field (url, then
   username, then email); the highest-confidence finding of each group survives
2. Rescore survivors: verification, exact username match and profile
   richness raise confidence
3. Drop findings under the confidence floor
4. Stable sort by descending confidence (ties keep arrival order)
"""

from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import structlog

from ..adapters.base_adapter import ConfidenceLevel, Finding


DEFAULT_DEDUPE_FIELDS = ("url", "username", "email")
RICHNESS_FIELDS = ("display_name", "bio", "email", "location", "avatar")

VERIFIED_BOOST = 0.2
USERNAME_MATCH_BOOST = 0.3
RICHNESS_BOOST = 0.1

HIGH_THRESHOLD = 0.8
MEDIUM_THRESHOLD = 0.5


def confidence_level(confidence: float) -> ConfidenceLevel:
    if confidence >= HIGH_THRESHOLD:
        return ConfidenceLevel.HIGH
    if confidence >= MEDIUM_THRESHOLD:
        return ConfidenceLevel.MEDIUM
    return ConfidenceLevel.LOW


class ResultFusion:
    """
    Merges findings from multiple sources into a ranked, unique list.

    Fusing is idempotent: scoring always starts from the confidence the
    source reported (kept in ``base_confidence``), so running fuse() on an
    already fused list returns the same list.

    Example:
        >>> fusion = ResultFusion()
        >>> ranked = fusion.fuse(raw_findings, query="octocat")
    """

    def __init__(
        self,
        dedupe_fields: Sequence[str] = DEFAULT_DEDUPE_FIELDS,
        min_confidence: float = 0.0,
    ):
        """
        Initialize the fusion stage.

        Args:
            dedupe_fields: Finding attributes that make up the dedupe key, in order
            min_confidence: Findings scoring below this are discarded
        """
        self.dedupe_fields = tuple(dedupe_fields)
        self.min_confidence = min_confidence
        self.logger = structlog.get_logger(__name__)

    def dedupe_key(self, finding: Finding) -> Optional[str]:
        """First non-empty identity field in configured order, or None."""
        for field_name in self.dedupe_fields:
            value = getattr(finding, field_name, None)
            if value:
                return f"{field_name}:{value}"
        return None

    def deduplicate(self, findings: Iterable[Finding]) -> List[Finding]:
        """
        Keep one finding per dedupe key.

        A later finding replaces the group's current one only with a strictly
        higher confidence. Findings without a key always pass through.
        Output preserves the arrival order of the surviving findings.
        """
        winners: Dict[str, Tuple[int, Finding]] = {}
        keyless: List[Tuple[int, Finding]] = []

        for index, finding in enumerate(findings):
            key = self.dedupe_key(finding)
            if key is None:
                keyless.append((index, finding))
                continue

            current = winners.get(key)
            if current is None or finding.confidence > current[1].confidence:
                winners[key] = (index, finding)

        survivors = sorted(keyless + list(winners.values()), key=lambda item: item[0])
        return [finding for _, finding in survivors]

    def score(self, finding: Finding, query: str) -> float:
        """Compute a finding's fused confidence without modifying it."""
        base = finding.base_confidence if finding.base_confidence is not None else finding.confidence
        score = base

        if finding.verified:
            score += VERIFIED_BOOST

        if finding.username and finding.username.lower() == query.lower():
            score += USERNAME_MATCH_BOOST

        filled = sum(1 for f in RICHNESS_FIELDS if getattr(finding, f, None))
        score += filled / len(RICHNESS_FIELDS) * RICHNESS_BOOST

        return min(1.0, max(0.0, score))

    def apply_score(self, finding: Finding, query: str) -> Finding:
        score = self.score(finding, query)
        if finding.base_confidence is None:
            finding.base_confidence = finding.confidence
        finding.confidence = score
        finding.confidence_level = confidence_level(score)
        return finding

    def rank(self, findings: Iterable[Finding]) -> List[Finding]:
        """Stable sort by descending confidence."""
        return sorted(findings, key=lambda f: f.confidence, reverse=True)

    def fuse(self, findings: Iterable[Finding], query: str) -> List[Finding]:
        """
        Run the full fusion pipeline.

        Args:
            findings: Raw findings in arrival order
            query: The scanned query token

        Returns:
            Deduplicated, scored findings sorted by descending confidence
        """
        findings = list(findings)
        unique = self.deduplicate(findings)
        scored = [self.apply_score(f, query) for f in unique]
        kept = [f for f in scored if f.confidence >= self.min_confidence]
        ranked = self.rank(kept)

        self.logger.debug(
            "fusion_complete",
            raw=len(findings),
            unique=len(unique),
            below_threshold=len(scored) - len(kept),
        )
        return ranked
