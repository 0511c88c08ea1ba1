"""Drives one member through generation, sanitization and staging."""

import logging
import time
from datetime import datetime
from typing import TYPE_CHECKING, Protocol

from doc_bot.agents.exceptions import GenerationInvalidError
from doc_bot.agents.sanitizer import DocSanitizer
from doc_bot.models import (
    AIInteraction,
    FileResult,
    InferenceResponse,
    InteractionType,
    MemberDescriptor,
    MemberOutcome,
)

if TYPE_CHECKING:
    from doc_bot.recording import RunRecorder
    from doc_bot.utils import SourceEditor

logger = logging.getLogger(__name__)


class InferenceProvider(Protocol):
    def generate(self, prompt: str) -> InferenceResponse: ...


class MemberPromptRenderer(Protocol):
    def render(self, member: MemberDescriptor) -> str: ...


class MemberProcessor:
    """Documents a single member of a file.

    Provider errors are not caught here; they end the whole file.
    """

    def __init__(
        self,
        inference: InferenceProvider,
        prompts: MemberPromptRenderer,
        recorder: "RunRecorder",
        sanitizer: DocSanitizer | None = None,
    ) -> None:
        self.inference = inference
        self.prompts = prompts
        self.recorder = recorder
        self.sanitizer = sanitizer or DocSanitizer()

    def process_member(
        self,
        member: MemberDescriptor,
        editor: "SourceEditor",
        file_result: FileResult,
    ) -> MemberOutcome:
        """Generate, sanitize and stage documentation for one member.

        Args:
            member: The member to document.
            editor: Working copy of the file that owns the member.
            file_result: Record that receives counters and the interaction.

        Returns:
            SKIPPED when the member is already documented, DOCUMENTED when a
            block was staged, FAILED when the generated block was unusable.

        Raises:
            ProviderError: If the inference call fails.
        """
        file_result.members_processed += 1
        if member.has_documentation:
            file_result.members_already_documented += 1
            logger.debug("Skipping documented member %s", member.name)
            return MemberOutcome.SKIPPED

        prompt = self.prompts.render(member)
        start_time = datetime.now()
        started = time.monotonic()
        response = self.inference.generate(prompt)
        duration = time.monotonic() - started

        outcome = MemberOutcome.FAILED
        try:
            try:
                result = self.sanitizer.sanitize(response.text, member.signature)
            except GenerationInvalidError as e:
                logger.warning("Discarding documentation for %s: %s", member.name, e)
            else:
                editor.stage_documentation(member.source_span, result.lines)
                file_result.members_documented += 1
                file_result.sanitization_fixes += result.fix_count
                outcome = MemberOutcome.DOCUMENTED
        finally:
            # Tokens were spent even when staging raises.
            self.recorder.record_interaction(
                file_result,
                AIInteraction(
                    interaction_type=InteractionType.DOCUMENTATION,
                    start_time=start_time,
                    duration_seconds=duration,
                    prompt=prompt,
                    response=response.text,
                    prompt_tokens=response.prompt_tokens,
                    response_tokens=response.response_tokens,
                    applied=outcome == MemberOutcome.DOCUMENTED,
                    member_name=member.name,
                ),
            )
        return outcome
