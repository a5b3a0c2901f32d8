"""Component factory for ContentPilot.

Creates and wires the provider chain, dispatcher, context selector,
validator and quality gate from configuration, so callers receive fully
initialized components.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from contentpilot.context.selector import ContextSelector
from contentpilot.core.config import (
    AppConfig,
    PromptLoader,
    ProviderRegistry,
    load_config,
    load_provider_registry,
)
from contentpilot.llm.dispatcher import ProviderDispatcher
from contentpilot.llm.providers import build_degradation_chain
from contentpilot.llm.token_tracker import TokenTracker
from contentpilot.orchestrator.pipeline import ContentPipeline
from contentpilot.quality.gate import QualityGate
from contentpilot.quality.validator import ContentValidator

logger = logging.getLogger("contentpilot.factory")


@dataclass
class ComponentBundle:
    """Container for all initialized components.

    The factory builds the bundle once; handlers and the CLI take the
    components they need from it.
    """

    config: AppConfig
    provider_registry: ProviderRegistry
    dispatcher: ProviderDispatcher
    selector: ContextSelector
    validator: ContentValidator
    gate: QualityGate
    token_tracker: TokenTracker
    prompt_loader: PromptLoader


class ComponentFactory:
    """Factory for creating and wiring ContentPilot components.

    Usage:
        bundle = ComponentFactory.create(config_dir=Path("config"))
        pipeline = ComponentFactory.create_pipeline(bundle)
        report = pipeline.run(documents, content_type="homepage")
    """

    @staticmethod
    def create(
        config_dir: Optional[Path] = None,
        env: Optional[str] = None,
        registry: Optional[ProviderRegistry] = None,
    ) -> ComponentBundle:
        """Create and wire all components.

        Args:
            config_dir: Path to config/ directory. Default: project root/config.
            env: Environment name for config overlay (e.g. "test").
            registry: Provider registry to use instead of providers.yaml.

        Returns:
            ComponentBundle with all components ready to use.
        """
        logger.info("Initializing components...")

        config = load_config(config_dir=config_dir, env=env)
        provider_registry = registry or load_provider_registry(config_dir=config_dir)
        logger.info("Config loaded (%d providers)", len(provider_registry.providers))

        token_tracker = TokenTracker(
            jsonl_path=config.token_tracking.jsonl_path,
            enabled=config.token_tracking.enabled,
        )

        providers = build_degradation_chain(
            [d for d in provider_registry.ordered() if d.enabled]
        )
        dispatcher = ProviderDispatcher(
            providers,
            config=config.dispatcher,
            token_tracker=token_tracker,
        )
        logger.info(
            "Degradation chain: %s (available: %s)",
            " -> ".join(p.name for p in providers) or "empty",
            ", ".join(dispatcher.available_providers()) or "none",
        )

        selector = ContextSelector(config.context)
        validator = ContentValidator(config.quality)
        gate = QualityGate(dispatcher, validator=validator, config=config.quality)
        prompts_dir = (config_dir / "prompts") if config_dir is not None else None
        prompt_loader = PromptLoader(prompts_dir)

        logger.info("All components initialized")
        return ComponentBundle(
            config=config,
            provider_registry=provider_registry,
            dispatcher=dispatcher,
            selector=selector,
            validator=validator,
            gate=gate,
            token_tracker=token_tracker,
            prompt_loader=prompt_loader,
        )

    @staticmethod
    def create_pipeline(bundle: ComponentBundle) -> ContentPipeline:
        return ContentPipeline(
            selector=bundle.selector,
            dispatcher=bundle.dispatcher,
            gate=bundle.gate,
            prompt_loader=bundle.prompt_loader,
            config=bundle.config.orchestrator,
            token_tracker=bundle.token_tracker,
        )

    @staticmethod
    def close(bundle: ComponentBundle) -> None:
        """Release provider network resources."""
        bundle.dispatcher.close()
        logger.info("All components shut down")
