"""Quality gate: generate, validate, retry, fall back.

The gate never raises for bad output. A run ends in one of two ways:

    Accept   - an attempt validated; returned immediately.
    Fallback - max_retries + 1 attempts were rejected (or produced nothing
               because every provider failed); a locally rendered template
               is returned with passed=False.

The first attempt samples with the creative temperature. Later attempts use
the conservative temperature and a prompt that lists the validation errors
of the previous attempt.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from contentpilot.core.config import QualityGateConfig
from contentpilot.core.exceptions import AllProvidersFailedError
from contentpilot.core.models import Content, GenerationRequest, ValidationCriteria, ValidationResult
from contentpilot.llm.dispatcher import ProviderDispatcher
from contentpilot.llm.response_parser import unwrap_markdown
from contentpilot.quality.fallbacks import render_fallback
from contentpilot.quality.validator import ContentValidator

logger = logging.getLogger("contentpilot.quality.gate")

MAX_FEEDBACK_ITEMS = 8


class QualityGate:
    """Bounded generate-validate-retry loop over the provider dispatcher."""

    def __init__(
        self,
        dispatcher: ProviderDispatcher,
        validator: Optional[ContentValidator] = None,
        config: Optional[QualityGateConfig] = None,
    ):
        self.dispatcher = dispatcher
        self.config = config or QualityGateConfig()
        self.validator = validator or ContentValidator(self.config)

    def generate_validated(
        self,
        prompt: str,
        content_type: str,
        max_retries: Optional[int] = None,
        system_prompt: Optional[str] = None,
        criteria: Optional[ValidationCriteria] = None,
        fallback_values: Optional[dict[str, Any]] = None,
        metadata: Optional[dict[str, Any]] = None,
    ) -> Content:
        """Generate content for a content type that passes validation.

        Args:
            prompt: User prompt for the first attempt.
            content_type: Selects validation rules and the fallback template.
            max_retries: Retries after the first attempt (config default when None).
            system_prompt: Optional system message sent with every attempt.
            criteria: Rules for content types without built-in validation.
            fallback_values: Values for the fallback template (name, description, ...).
            metadata: Extra request metadata passed through to providers.

        Returns:
            Content. passed is False when the fallback template was used.
        """
        retries = self.config.max_retries if max_retries is None else max(0, max_retries)
        total_attempts = retries + 1
        current_prompt = prompt
        best: Optional[ValidationResult] = None
        tokens_used = 0

        for attempt in range(1, total_attempts + 1):
            temperature = (
                self.config.creative_temperature if attempt == 1
                else self.config.conservative_temperature
            )
            request = GenerationRequest.from_prompt(
                current_prompt,
                system_prompt=system_prompt,
                temperature=temperature,
                max_tokens=self.config.max_tokens,
                metadata={**(metadata or {}), "purpose": "content", "content_type": content_type},
            )

            try:
                response = self.dispatcher.generate(request)
            except AllProvidersFailedError as e:
                logger.warning(
                    "Attempt %d/%d for %s produced no output: %s",
                    attempt, total_attempts, content_type, e,
                )
                continue

            tokens_used += response.usage.total_tokens
            text = unwrap_markdown(response.content)
            result = self.validator.validate(text, content_type, criteria)

            if result.passed:
                logger.info(
                    "Accepted %s on attempt %d/%d (score %d, provider %s)",
                    content_type, attempt, total_attempts, result.score, response.provider,
                )
                return Content(
                    text=text,
                    content_type=content_type,
                    passed=True,
                    score=result.score,
                    attempts=attempt,
                    provider=response.provider,
                    tokens_used=tokens_used,
                    validation=result,
                    best_attempt_score=result.score,
                )

            if best is None or result.score > best.score:
                best = result
            logger.info(
                "Rejected %s attempt %d/%d (score %d, %d errors, %d warnings)",
                content_type, attempt, total_attempts, result.score,
                len(result.errors), len(result.warnings),
            )
            if attempt < total_attempts:
                current_prompt = self.adjust_prompt(prompt, result)

        return self._fallback(content_type, total_attempts, tokens_used, best, criteria, fallback_values)

    def adjust_prompt(self, prompt: str, result: ValidationResult) -> str:
        """Append the previous attempt's validation problems to the base prompt."""
        problems = [f"- {e.message}" for e in result.errors]
        problems.extend(f"- {w}" for w in result.warnings)
        if not problems:
            problems.append(f"- The quality score was {result.score}/100")
        return (
            f"{prompt}\n\n"
            "IMPORTANT: The previous attempt was rejected for these reasons:\n"
            + "\n".join(problems[:MAX_FEEDBACK_ITEMS])
            + "\nFix every issue above and follow the required structure exactly."
        )

    def _fallback(
        self,
        content_type: str,
        attempts: int,
        tokens_used: int,
        best: Optional[ValidationResult],
        criteria: Optional[ValidationCriteria],
        values: Optional[dict[str, Any]],
    ) -> Content:
        text = render_fallback(content_type, **(values or {}))
        validation = self.validator.validate(text, content_type, criteria)
        logger.warning(
            "Using fallback template for %s after %d attempts (best score %s)",
            content_type, attempts, best.score if best else "n/a",
        )
        return Content(
            text=text,
            content_type=content_type,
            passed=False,
            score=validation.score,
            attempts=attempts,
            used_fallback=True,
            provider=None,
            tokens_used=tokens_used,
            validation=validation,
            best_attempt_score=best.score if best else None,
        )
