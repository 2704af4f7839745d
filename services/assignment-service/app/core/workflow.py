"""
Assignment workflow

Runs once per newly created ticket:
fetch → triaging → classify → classified → match moderator → assigned → notify.

- Classification failures degrade to defaults and never block assignment
- Storage steps are retried on SQLAlchemy errors; the whole run is retried
  on anything else except non-retriable errors
- Notification happens after the assignment is committed and its failure
  is logged and ignored
"""
import asyncio
import uuid
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any, Callable, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.classification import normalize
from app.core.config import settings
from app.core.db import SessionLocal
from app.core.directory import ModeratorDirectory
from app.core.exceptions import ClassifierResponseError, DuplicateRunError, NonRetriableError
from app.core.fsm import TicketState, has_reached
from app.core.logger import get_logger
from app.core.store import TicketStore
from app.models.ticket import Ticket
from app.schemas.classification import Classification, ClassifierResult
from app.schemas.user import UserRoleEnum
from app.services.classifier import TicketClassifier, build_classifier
from app.services.notifier import Notifier, build_notifier

logger = get_logger(__name__)

NOTIFICATION_SUBJECT = "Ticket Assigned"


@dataclass
class TicketSnapshot:
    """Plain copy of the ticket fields the workflow needs between steps."""
    id: int
    title: str
    description: str
    status: str
    related_skills: List[str] = field(default_factory=list)
    assigned_to: Optional[int] = None

    @classmethod
    def from_ticket(cls, ticket: Ticket) -> "TicketSnapshot":
        return cls(
            id=ticket.id,
            title=ticket.title,
            description=ticket.description or "",
            status=ticket.status,
            related_skills=list(ticket.related_skills or []),
            assigned_to=ticket.assigned_to,
        )


def _or_setting(value: Any, name: str) -> Any:
    return getattr(settings, name) if value is None else value


@dataclass
class Assignee:
    id: int
    email: str


class AssignmentWorkflow:
    def __init__(
        self,
        session_factory: Callable[[], Session],
        classifier: TicketClassifier,
        notifier: Notifier,
        classifier_timeout: Optional[float] = None,
        priority_case_sensitive: Optional[bool] = None,
        skill_case_sensitive: Optional[bool] = None,
        max_attempts: Optional[int] = None,
        step_max_attempts: Optional[int] = None,
        retry_delay: Optional[float] = None,
    ):
        """Options left as None are read from settings when the workflow is built."""
        self.session_factory = session_factory
        self.classifier = classifier
        self.notifier = notifier
        self.classifier_timeout = _or_setting(classifier_timeout, "CLASSIFIER_TIMEOUT_SECONDS")
        self.priority_case_sensitive = _or_setting(priority_case_sensitive, "PRIORITY_CASE_SENSITIVE")
        self.skill_case_sensitive = _or_setting(skill_case_sensitive, "SKILL_MATCH_CASE_SENSITIVE")
        self.max_attempts = max(1, _or_setting(max_attempts, "WORKFLOW_MAX_ATTEMPTS"))
        self.step_max_attempts = max(1, _or_setting(step_max_attempts, "STEP_MAX_ATTEMPTS"))
        self.retry_delay = _or_setting(retry_delay, "RETRY_DELAY_SECONDS")

    async def run(self, ticket_id: int) -> None:
        """
        Drive one ticket from created to assigned. Never raises: aborted and
        failed runs are logged and leave the ticket as the last committed step left it.
        """
        run_id = uuid.uuid4().hex
        for attempt in range(1, self.max_attempts + 1):
            try:
                await self._execute(ticket_id, run_id)
                return
            except DuplicateRunError as e:
                logger.warning(f"Skipping assignment run {run_id}: {e}")
                return
            except NonRetriableError as e:
                logger.error(f"Assignment run {run_id} aborted: {e}")
                return
            except Exception as e:
                if attempt >= self.max_attempts:
                    logger.exception(
                        f"Assignment run {run_id} for ticket {ticket_id} failed after {attempt} attempts"
                    )
                    return
                wait_time = self.retry_delay * (2 ** (attempt - 1))
                logger.warning(
                    f"Assignment run {run_id} for ticket {ticket_id} failed: {e}. "
                    f"Retrying in {wait_time}s (attempt {attempt}/{self.max_attempts})"
                )
                await asyncio.sleep(wait_time)

    async def _execute(self, ticket_id: int, run_id: str) -> None:
        db = self.session_factory()
        try:
            store = TicketStore(db)
            directory = ModeratorDirectory(db, case_sensitive=self.skill_case_sensitive)

            await self._step("fetch-ticket", db, self._load, store, ticket_id)
            ticket = await self._step("mark-triaging", db, self._claim, store, ticket_id, run_id)

            if not has_reached(ticket.status, TicketState.CLASSIFIED):
                classification = await self._classify(ticket)
                ticket = await self._step(
                    "persist-classification", db, self._record_classification,
                    store, ticket_id, classification, run_id,
                )

            if has_reached(ticket.status, TicketState.ASSIGNED):
                # Retried run: the assignment is already committed
                assignee = await self._step("fetch-assignee", db, self._lookup_assignee, directory, ticket.assigned_to)
            else:
                assignee = await self._step("match-moderator", db, self._match, directory, ticket.related_skills)
                ticket = await self._step(
                    "persist-assignment", db, self._record_assignment,
                    store, ticket_id, assignee, run_id,
                )

            await self._notify(ticket, assignee)
            logger.info(
                f"Ticket {ticket_id} assigned to {assignee.email if assignee else 'nobody'} (run {run_id})"
            )
        finally:
            db.close()

    async def _step(self, name: str, db: Session, fn: Callable[..., Any], *args: Any) -> Any:
        """
        Run a blocking storage step in a worker thread, retrying the whole
        step on SQLAlchemy errors.
        """
        for attempt in range(1, self.step_max_attempts + 1):
            try:
                logger.info(f"Running step {name}")
                return await asyncio.to_thread(fn, *args)
            except SQLAlchemyError as e:
                db.rollback()
                if attempt >= self.step_max_attempts:
                    raise
                wait_time = self.retry_delay * (2 ** (attempt - 1))
                logger.warning(
                    f"Step {name} failed: {e}. Retrying in {wait_time}s "
                    f"(attempt {attempt}/{self.step_max_attempts})"
                )
                await asyncio.sleep(wait_time)

    async def _classify(self, ticket: TicketSnapshot) -> Classification:
        result: Optional[ClassifierResult] = None
        try:
            result = await asyncio.wait_for(
                self.classifier.classify(ticket.title, ticket.description),
                timeout=self.classifier_timeout,
            )
            if isinstance(result, dict):
                result = ClassifierResult.model_validate(result)
            elif result is not None and not isinstance(result, ClassifierResult):
                raise ClassifierResponseError(f"Unexpected classifier result type {type(result).__name__}")
        except asyncio.TimeoutError:
            logger.warning(
                f"Classifier timed out after {self.classifier_timeout}s for ticket {ticket.id}, using defaults"
            )
            result = None
        except Exception as e:
            logger.warning(f"Classifier failed for ticket {ticket.id}, using defaults: {e}")
            result = None

        return normalize(result, case_sensitive=self.priority_case_sensitive)

    async def _notify(self, ticket: TicketSnapshot, assignee: Optional[Assignee]) -> None:
        if assignee is None:
            logger.warning(f"Ticket {ticket.id} has no assignee, skipping notification")
            return
        try:
            await self.notifier.send(
                assignee.email,
                NOTIFICATION_SUBJECT,
                f"A new ticket is assigned to you: {ticket.title}",
            )
        except Exception as e:
            logger.warning(f"Notification to {assignee.email} for ticket {ticket.id} failed: {e}")

    # Blocking steps, run through _step

    @staticmethod
    def _load(store: TicketStore, ticket_id: int) -> TicketSnapshot:
        return TicketSnapshot.from_ticket(store.load(ticket_id))

    @staticmethod
    def _claim(store: TicketStore, ticket_id: int, run_id: str) -> TicketSnapshot:
        return TicketSnapshot.from_ticket(store.claim(ticket_id, run_id))

    @staticmethod
    def _record_classification(store: TicketStore, ticket_id: int, classification: Classification,
                               run_id: str) -> TicketSnapshot:
        ticket = store.advance(
            ticket_id,
            TicketState.CLASSIFIED,
            action="classify",
            reason=f"Priority {classification.priority.value}",
            metadata_info={"run_id": run_id, "related_skills": classification.related_skills},
            priority=classification.priority.value,
            helpful_notes=classification.helpful_notes,
            related_skills=classification.related_skills,
        )
        return TicketSnapshot.from_ticket(ticket)

    @staticmethod
    def _match(directory: ModeratorDirectory, skills: List[str]) -> Optional[Assignee]:
        user = directory.find_by_skill_overlap(skills, role=UserRoleEnum.MODERATOR.value)
        if user is None:
            user = directory.find_one_by_role(UserRoleEnum.ADMIN.value)
        if user is None:
            return None
        return Assignee(id=user.id, email=user.email)

    @staticmethod
    def _lookup_assignee(directory: ModeratorDirectory, user_id: Optional[int]) -> Optional[Assignee]:
        if user_id is None:
            return None
        user = directory.get(user_id)
        return Assignee(id=user.id, email=user.email) if user else None

    @staticmethod
    def _record_assignment(store: TicketStore, ticket_id: int, assignee: Optional[Assignee],
                           run_id: str) -> TicketSnapshot:
        reason = f"Assigned to {assignee.email}" if assignee else "No moderator or admin available"
        ticket = store.advance(
            ticket_id,
            TicketState.ASSIGNED,
            action="assign",
            reason=reason,
            metadata_info={"run_id": run_id},
            assigned_to=assignee.id if assignee else None,
        )
        return TicketSnapshot.from_ticket(ticket)


@lru_cache()
def get_assignment_workflow() -> AssignmentWorkflow:
    """FastAPI dependency: process-wide workflow wired from settings."""
    return AssignmentWorkflow(
        SessionLocal,
        build_classifier(),
        build_notifier(),
        classifier_timeout=settings.CLASSIFIER_TIMEOUT_SECONDS,
        priority_case_sensitive=settings.PRIORITY_CASE_SENSITIVE,
        skill_case_sensitive=settings.SKILL_MATCH_CASE_SENSITIVE,
        max_attempts=settings.WORKFLOW_MAX_ATTEMPTS,
        step_max_attempts=settings.STEP_MAX_ATTEMPTS,
        retry_delay=settings.RETRY_DELAY_SECONDS,
    )
