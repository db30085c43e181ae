from __future__ import annotations

import logging
import uuid
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable, Optional

from backend.cvtailor.config import Settings, get_settings
from backend.cvtailor.core.cover_letter_gen import CoverLetterGenerator
from backend.cvtailor.core.cv_adapter import CVAdapter
from backend.cvtailor.core.notifier import Notifier, RecordingNotifier
from backend.cvtailor.core.pipeline import TailoringPipeline
from backend.cvtailor.services.prompt_invoker import PromptInvoker, get_prompt_invoker

logger = logging.getLogger(__name__)


def build_pipeline(
    invoker: PromptInvoker,
    settings: Optional[Settings] = None,
    notifier: Optional[Notifier] = None,
) -> TailoringPipeline:
    settings = settings or get_settings()
    return TailoringPipeline(
        adapter=CVAdapter(
            invoker,
            word_limit=settings.adapted_cv_word_limit,
            required_sections=settings.required_cv_sections,
        ),
        generator=CoverLetterGenerator(invoker, contact_links=settings.contact_links),
        notifier=notifier,
        min_chars=settings.cv_min_chars,
        max_chars=settings.cv_max_chars,
    )


@dataclass
class Session:
    session_id: str
    pipeline: TailoringPipeline
    notifier: RecordingNotifier


class SessionStore:
    """
    In-memory map of browser session -> pipeline.

    Holds only transient UI state. When full, the oldest session that is not
    running a submission is evicted.
    """

    def __init__(
        self,
        invoker_factory: Callable[[], PromptInvoker] = get_prompt_invoker,
        limit: int = 1000,
        settings: Optional[Settings] = None,
    ):
        self.invoker_factory = invoker_factory
        self.limit = limit
        self.settings = settings
        self._sessions: "OrderedDict[str, Session]" = OrderedDict()

    def __len__(self) -> int:
        return len(self._sessions)

    def create(self) -> Session:
        self._evict()
        notifier = RecordingNotifier()
        session = Session(
            session_id=uuid.uuid4().hex,
            pipeline=build_pipeline(self.invoker_factory(), self.settings, notifier),
            notifier=notifier,
        )
        self._sessions[session.session_id] = session
        logger.info("Session created: %s", session.session_id)
        return session

    def get(self, session_id: str) -> Optional[Session]:
        session = self._sessions.get(session_id)
        if session is not None:
            self._sessions.move_to_end(session_id)
        return session

    def delete(self, session_id: str) -> bool:
        return self._sessions.pop(session_id, None) is not None

    def _evict(self) -> None:
        while len(self._sessions) >= self.limit:
            victim = next(
                (sid for sid, s in self._sessions.items() if not s.pipeline.busy),
                None,
            )
            if victim is None:
                break
            del self._sessions[victim]
            logger.info("Session evicted: %s", victim)
