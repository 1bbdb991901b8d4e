"""
Submission approval orchestrator.

Drives each pending submission through location parsing, link checking,
extraction, duplicate detection, classification and (for borderline cases)
adjudication, then records exactly one terminal status per submission.
Runs are sequential; preview mode computes every decision but writes
nothing.
"""

import time
from typing import Callable, List, Optional

from .adjudicator import Adjudicator, build_completion_client
from .classify import classify_submission
from .config import Settings
from .constants import (
    STATUS_APPROVED,
    STATUS_REJECTED,
    CLEAR_MATCH,
    CLEAR_MISMATCH,
    ACTION_APPROVED,
    ACTION_REJECTED,
    ACTION_FLAGGED,
    ACTION_ERROR,
    MAX_SUBMISSIONS_PER_RUN,
    SUBMISSION_DELAY_SECONDS,
    BATCH_SIZE,
    MAX_BATCHES,
    BATCH_PAUSE_SECONDS,
)
from .dedup import find_existing_place
from .geometry import GeometryParseError, parse_location
from .logger import StructuredLogger, get_logger
from .models import (
    ApproverConfig,
    ExtractedRecord,
    ParsedSubmission,
    ProcessingResult,
    RunSummary,
    Submission,
)
from .scrapers.common import ScrapeExhausted, fetch_with_retry
from .scrapers.google_maps import is_valid_maps_url
from .storage import PlaceStore


class Approver:
    """Processes pending submissions against a store."""

    def __init__(
        self,
        store,
        adjudicator: Optional[Adjudicator] = None,
        extractor: Optional[Callable[[str], ExtractedRecord]] = None,
        sleep: Callable[[float], None] = time.sleep,
        logger: Optional[StructuredLogger] = None,
    ):
        """
        Args:
            store: Object providing fetch_pending, nearby_places, create_place,
                update_submission_status and refresh_aggregates
            adjudicator: Decides borderline cases (unconfigured if None)
            extractor: url -> ExtractedRecord (Google Maps parser if None)
            sleep: Used for retry backoff and pacing between submissions
            logger: Defaults to the global structured logger
        """
        self.store = store
        self.adjudicator = adjudicator or Adjudicator()
        self.extractor = extractor
        self.sleep = sleep
        self.logger = logger or get_logger()

    def _extract(self, url: str) -> ExtractedRecord:
        return fetch_with_retry(url, extractor=self.extractor, sleep=self.sleep)

    def _set_status(self, config: ApproverConfig, submission_id: str, status: str, notes: str, record_id: Optional[str] = None):
        if config.preview_mode:
            self.logger.debug("Preview mode: skipping status update", submission_id=submission_id, status=status)
            return
        self.store.update_submission_status(submission_id, status, notes, record_id)

    def _approve_new(self, config: ApproverConfig, submission_id: str, extracted: ExtractedRecord, notes: str) -> Optional[str]:
        """Create the place and approve the submission; returns the place id (None in preview)."""
        if config.preview_mode:
            self.logger.debug("Preview mode: skipping place creation", submission_id=submission_id)
            return None
        record_id = self.store.create_place(extracted)
        self.store.update_submission_status(submission_id, STATUS_APPROVED, notes, record_id)
        return record_id

    def process_submission(self, submission: Submission, config: ApproverConfig) -> ProcessingResult:
        """Run one submission through the pipeline. Never raises."""
        result = ProcessingResult(submission_id=submission.id)

        try:
            # 1. Location
            try:
                location = parse_location(submission.raw_location)
            except GeometryParseError as e:
                self.logger.error("Failed to parse submission location", submission_id=submission.id, error=str(e))
                self.logger.record_error("GeometryParseError")
                result.notes = f"Failed to parse submission location: {e}"
                return result
            parsed = ParsedSubmission(submission=submission, location=location)

            # 2. Link shape, before any external call
            if not is_valid_maps_url(submission.source_link):
                result.action = ACTION_REJECTED
                result.notes = "Invalid Google Maps URL format"
                self._set_status(config, submission.id, STATUS_REJECTED, result.notes)
                result.success = True
                return result

            # 3. Extraction; failures leave the submission pending for a later run
            try:
                extracted = self._extract(submission.source_link)
            except ScrapeExhausted as e:
                result.action = ACTION_FLAGGED
                result.notes = f"Scraping failed: {e}"
                result.success = True
                return result

            # 4. Duplicate check
            existing = find_existing_place(self.store, extracted.name, extracted.location)
            if existing is not None:
                result.action = ACTION_APPROVED
                result.record_id = existing.id
                result.notes = f'Linked to existing place: "{existing.name}" (ID: {existing.id})'
                self._set_status(config, submission.id, STATUS_APPROVED, result.notes, existing.id)
                result.success = True
                return result

            # 5. Classification
            validation = classify_submission(parsed, extracted)
            result.name_match_score = validation.name_match_score
            result.distance_meters = validation.distance_meters
            self.logger.info(
                f"Classification: {validation.classification}",
                submission_id=submission.id,
                name_match=validation.name_match_score,
                distance_m=validation.distance_meters,
            )

            if validation.classification == CLEAR_MATCH:
                result.notes = (
                    f"Auto-approved (clear match): {validation.name_match_score}% name, "
                    f"{validation.distance_meters}m"
                )
                result.record_id = self._approve_new(config, submission.id, extracted, result.notes)
                result.action = ACTION_APPROVED
            elif validation.classification == CLEAR_MISMATCH:
                result.action = ACTION_REJECTED
                result.notes = (
                    f"Rejected (clear mismatch): {validation.name_match_score}% name, "
                    f'{validation.distance_meters}m. Submission: "{submission.name}" vs Extracted: "{extracted.name}"'
                )
                self._set_status(config, submission.id, STATUS_REJECTED, result.notes)
            else:
                # 6. Borderline
                self.logger.info("Using adjudicator for borderline decision", submission_id=submission.id)
                result.used_adjudicator = True
                self.logger.record_adjudicator_call()
                decision = self.adjudicator.decide(
                    submission.name,
                    parsed.location,
                    extracted.name,
                    extracted.address,
                    extracted.location,
                    validation.name_match_score,
                    validation.distance_meters,
                )
                self.logger.info(
                    f"Adjudicator decision: {'APPROVE' if decision.approve else 'FLAG'}",
                    reasoning=decision.reasoning,
                )
                if decision.approve:
                    result.notes = f"Adjudicator-approved: {decision.reasoning}"
                    result.record_id = self._approve_new(config, submission.id, extracted, result.notes)
                    result.action = ACTION_APPROVED
                else:
                    result.action = ACTION_FLAGGED
                    result.notes = f"Adjudicator-flagged: {decision.reasoning}"
                    self._set_status(config, submission.id, STATUS_REJECTED, result.notes)

            result.success = True
            return result

        except Exception as e:
            result.action = ACTION_ERROR
            result.success = False
            result.notes = f"Processing error: {e}"
            self.logger.error("Processing error", submission_id=submission.id, error=str(e), error_type=type(e).__name__)
            self.logger.record_error(type(e).__name__)
            return result

    def run(self, config: Optional[ApproverConfig] = None) -> RunSummary:
        """
        Process up to config.limit pending submissions, oldest first.

        A failure to fetch the pending list propagates; every other failure
        becomes an ``error`` result in the summary.
        """
        config = config or ApproverConfig()
        summary = RunSummary()
        self.logger.set_verbose(config.verbose)
        self.logger.reset_metrics()

        self.logger.info(
            "Starting approval run",
            mode="PREVIEW (no changes)" if config.preview_mode else "LIVE",
            limit=config.limit,
        )

        submissions = self.store.fetch_pending(config.limit)
        self.logger.info(f"Found {len(submissions)} pending submission(s)")

        for i, submission in enumerate(submissions):
            self.logger.info(
                f"[{i + 1}/{len(submissions)}] Processing: \"{submission.name}\"",
                submission_id=submission.id,
                link=submission.source_link,
            )
            result = self.process_submission(submission, config)
            summary.add(result)
            self.logger.record_outcome(result.action)
            self.logger.info(f"Result: {result.action.upper()}", notes=result.notes)

            if i < len(submissions) - 1:
                self.sleep(SUBMISSION_DELAY_SECONDS)

        summary.finish()
        self._log_summary(summary)

        if summary.approved > 0 and not config.preview_mode:
            try:
                self.store.refresh_aggregates()
                self.logger.info("Refreshed place stats cache")
            except Exception as e:
                self.logger.error("Failed to refresh place stats", error=str(e))

        return summary

    def _log_summary(self, summary: RunSummary):
        self.logger.info("=== Approval Run Summary ===")
        self.logger.info(f"Total processed: {summary.total_processed}")
        self.logger.info(f"Approved: {summary.approved}")
        self.logger.info(f"Rejected: {summary.rejected}")
        self.logger.info(f"Flagged: {summary.flagged}")
        self.logger.info(f"Errors: {summary.errors}")
        self.logger.info(f"Adjudicator calls: {summary.adjudicator_calls}")
        self.logger.info(f"Duration: {summary.duration_seconds:.1f}s")
        self.logger.log_metrics_summary()


def build_approver(
    settings: Optional[Settings] = None,
    store=None,
    adjudicator: Optional[Adjudicator] = None,
    extractor: Optional[Callable[[str], ExtractedRecord]] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> Approver:
    """Wire an Approver from settings, filling in any collaborator not given."""
    if store is None or adjudicator is None:
        settings = settings or Settings.from_env()
    logger = get_logger()
    if settings is not None:
        logger.configure(
            level=settings.log_level,
            log_dir=settings.log_dir,
            enable_file=settings.log_to_file,
        )
    if store is None:
        store = PlaceStore(settings.database_path)
    if adjudicator is None:
        for name in settings.missing_optional():
            logger.warning(f"{name} not set - borderline cases will be flagged for manual review")
        adjudicator = Adjudicator(build_completion_client(settings))
    return Approver(store, adjudicator=adjudicator, extractor=extractor, sleep=sleep, logger=logger)


def run_approver(
    preview_mode: bool = False,
    limit: int = MAX_SUBMISSIONS_PER_RUN,
    verbose: bool = True,
    *,
    settings: Optional[Settings] = None,
    store=None,
    adjudicator: Optional[Adjudicator] = None,
    extractor: Optional[Callable[[str], ExtractedRecord]] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> RunSummary:
    """Entry point for a single approval run."""
    approver = build_approver(settings, store, adjudicator, extractor, sleep)
    return approver.run(ApproverConfig(preview_mode=preview_mode, limit=limit, verbose=verbose))


def run_until_drained(
    batch_size: int = BATCH_SIZE,
    max_batches: int = MAX_BATCHES,
    batch_pause: float = BATCH_PAUSE_SECONDS,
    preview_mode: bool = False,
    verbose: bool = False,
    *,
    settings: Optional[Settings] = None,
    store=None,
    adjudicator: Optional[Adjudicator] = None,
    extractor: Optional[Callable[[str], ExtractedRecord]] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> List[RunSummary]:
    """
    Run batches until the queue drains or max_batches is reached.

    A batch that processes fewer than batch_size submissions ends the loop.
    In preview mode nothing leaves the queue, so only one batch runs.
    """
    approver = build_approver(settings, store, adjudicator, extractor, sleep)
    config = ApproverConfig(preview_mode=preview_mode, limit=batch_size, verbose=verbose)

    summaries: List[RunSummary] = []
    while len(summaries) < max_batches:
        summary = approver.run(config)
        summaries.append(summary)
        if preview_mode or summary.total_processed < batch_size:
            break
        if len(summaries) < max_batches:
            sleep(batch_pause)
    return summaries


def combine_summaries(summaries: List[RunSummary]) -> dict:
    """Totals across batch summaries."""
    fields = ("total_processed", "approved", "rejected", "flagged", "skipped", "errors", "adjudicator_calls")
    totals = {f: sum(getattr(s, f) for s in summaries) for f in fields}
    totals["batch_runs"] = len(summaries)
    return totals
