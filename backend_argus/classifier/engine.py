"""
TokenRiskClassifier: the public facade over the neural and rule-based paths.

Lifecycle (one-way per instance, no hot reload):
    UNINITIALIZED -> NEURAL_READY       artifact found, valid (and not collapsed)
    UNINITIALIZED -> RULE_BASED_READY   no artifact, unreadable, invalid, or collapsed

classify() is async only for the one-time lazy load. Concurrent first callers
share a single in-flight asyncio.Task; the file read runs in a worker thread.
After that every call is synchronous (classify_sync). Load failures never reach
callers; a malformed vector raises FeatureDimensionError.
"""

from __future__ import annotations

import asyncio
import threading
import time
from enum import Enum
from pathlib import Path
from typing import Any, Mapping, Sequence

import numpy as np

from backend_argus.analytics.collapse_detector import (
    DEFAULT_GAP_THRESHOLD,
    CollapseReport,
    check_engine_collapse,
)
from backend_argus.analytics.flag_generator import FlagGenerator
from backend_argus.analytics.rule_classifier import RuleBasedClassifier, WashTradingSignal
from backend_argus.argus_logging import get_logger
from backend_argus.classifier.metrics import InferenceStats, MetricsReporter
from backend_argus.config.settings import ClassifierSettings, get_settings
from backend_argus.core.exceptions import InferenceError
from backend_argus.core.models import MODE_NEURAL, MODE_RULE_BASED, ClassifierOutput
from backend_argus.ml.feature_vector import validate_vector
from backend_argus.ml.importance import category_importance
from backend_argus.ml.inference import InferenceEngine
from backend_argus.ml.model_loader import LoadedModel, try_load_model
from backend_argus.ml.patterns import PatternMatch, match_patterns

logger = get_logger(__name__)


class EngineState(str, Enum):
    UNINITIALIZED = "UNINITIALIZED"
    NEURAL_READY = "NEURAL_READY"
    RULE_BASED_READY = "RULE_BASED_READY"


class TokenRiskClassifier:
    """
    Classify a 29-float feature vector into a ClassifierOutput.

    Uses the trained model when one loads, else the rule-based rubric. Both
    paths return the same verdict shape; mode tells them apart.
    """

    def __init__(
        self,
        settings: ClassifierSettings | None = None,
        model_path: str | Path | None = None,
        metrics: MetricsReporter | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._model_path = model_path or self._settings.model_path
        self._state = EngineState.UNINITIALIZED
        self._state_lock = threading.Lock()
        self._init_task: asyncio.Task | None = None
        self._engine: InferenceEngine | None = None
        self._collapse_report: CollapseReport | None = None
        self._rules = RuleBasedClassifier()
        self._flag_generator = FlagGenerator()
        self._stats = InferenceStats()
        self._metrics = metrics or MetricsReporter(
            self._settings.metrics_url, self._settings.metrics_timeout_sec
        )
        if self._settings.eager_load:
            self.load_sync()

    # ------------------------------------------------------------------
    # Initialization
    # ------------------------------------------------------------------

    @property
    def state(self) -> EngineState:
        return self._state

    async def initialize(self) -> EngineState:
        """Load the model once. All concurrent callers await the same task."""
        if self._state is not EngineState.UNINITIALIZED:
            return self._state
        loop = asyncio.get_running_loop()
        if self._init_task is None or self._init_task.get_loop() is not loop:
            self._init_task = loop.create_task(self._load_async())
        # shield: a cancelled caller must not cancel the load for everyone else
        await asyncio.shield(self._init_task)
        return self._state

    async def _load_async(self) -> None:
        model = await asyncio.to_thread(try_load_model, self._model_path)
        self._settle(model)

    def load_sync(self) -> EngineState:
        """Synchronous initialization for hosts without an event loop."""
        if self._state is EngineState.UNINITIALIZED:
            self._settle(try_load_model(self._model_path))
        return self._state

    def _settle(self, model: LoadedModel | None) -> None:
        with self._state_lock:
            if self._state is not EngineState.UNINITIALIZED:
                return
            if model is None:
                self._state = EngineState.RULE_BASED_READY
                logger.info("classifier_rule_based_mode", reason="no_model")
                return
            engine = InferenceEngine(model)
            if self._settings.collapse_fallback:
                try:
                    report = check_engine_collapse(engine)
                except InferenceError as e:
                    self._state = EngineState.RULE_BASED_READY
                    logger.warning("classifier_rule_based_mode", reason="non_finite_output", error=str(e))
                    return
                self._collapse_report = report
                if report.collapsed:
                    self._state = EngineState.RULE_BASED_READY
                    logger.warning("classifier_rule_based_mode", reason="quantization_collapse", **report.to_dict())
                    return
            self._engine = engine
            self._state = EngineState.NEURAL_READY
            logger.info("classifier_neural_mode", **model.describe())

    # ------------------------------------------------------------------
    # Classification
    # ------------------------------------------------------------------

    async def classify(
        self,
        vector: Sequence[float] | np.ndarray,
        wash_trading: WashTradingSignal | Mapping[str, Any] | None = None,
    ) -> ClassifierOutput:
        """Lazy-load on first call, then classify. Raises FeatureDimensionError on a malformed vector."""
        validate_vector(vector)
        if self._state is EngineState.UNINITIALIZED:
            await self.initialize()
        return self.classify_sync(vector, wash_trading=wash_trading)

    def classify_sync(
        self,
        vector: Sequence[float] | np.ndarray,
        wash_trading: WashTradingSignal | Mapping[str, Any] | None = None,
    ) -> ClassifierOutput:
        """
        Synchronous hot path.

        wash_trading is an auxiliary signal for the rule-based rubric only;
        the model has no input for it and ignores it.
        """
        x = validate_vector(vector)
        if self._state is EngineState.UNINITIALIZED:
            self.load_sync()

        start = time.perf_counter()
        engine = self._engine
        output = None
        if engine is not None:
            try:
                output = self._classify_neural(engine, x)
            except InferenceError as e:
                logger.warning("classifier_neural_failed", error=str(e), fallback=MODE_RULE_BASED)
        if output is None:
            output = self._rules.classify(x, wash_trading=wash_trading, extra_flags=self._flag_generator.generate(x))
        elapsed_ms = (time.perf_counter() - start) * 1000.0

        self._stats.record(elapsed_ms)
        self._metrics.report(elapsed_ms, output.confidence)
        logger.debug(
            "classifier_classified",
            mode=output.mode,
            risk_score=output.risk_score,
            risk_level=output.risk_level.value,
            latency_ms=round(elapsed_ms, 4),
        )
        return output

    def _classify_neural(self, engine: InferenceEngine, x: np.ndarray) -> ClassifierOutput:
        prediction = engine.predict(x)
        return ClassifierOutput(
            risk_score=prediction.risk_score,
            risk_level=prediction.risk_level,
            confidence=prediction.confidence,
            feature_importance=category_importance(engine.model.first_layer, x),
            flags=tuple(self._flag_generator.generate(x, prediction.probabilities)),
            mode=MODE_NEURAL,
            probabilities=prediction.probabilities,
            metadata={"modelVersion": engine.model.version},
        )

    def match_patterns(self, vector: Sequence[float] | np.ndarray) -> list[PatternMatch]:
        return match_patterns(vector)

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def is_neural_model_loaded(self) -> bool:
        return self._engine is not None

    def get_model_info(self) -> dict[str, Any]:
        """{mode, state} plus quantization/architecture/accuracy/trainedOn when the model is active."""
        engine = self._engine
        if engine is None:
            return {"mode": MODE_RULE_BASED, "state": self._state.value}
        model = engine.model
        return {
            "mode": MODE_NEURAL,
            "state": self._state.value,
            "quantization": model.quantization,
            "architecture": list(model.architecture),
            "accuracy": model.accuracy,
            "trainedOn": model.trained_on,
        }

    def get_inference_stats(self) -> dict[str, Any]:
        return self._stats.snapshot()

    def check_quantization_collapse(self, threshold: int = DEFAULT_GAP_THRESHOLD) -> CollapseReport | None:
        """
        Score the active model on the reference tokens.

        Returns None in rule-based mode, except when the model was rejected for
        collapse at load time (that report is returned instead).
        """
        if self._state is EngineState.UNINITIALIZED:
            self.load_sync()
        engine = self._engine
        if engine is None:
            return self._collapse_report
        report = check_engine_collapse(engine, threshold=threshold)
        self._collapse_report = report
        return report

    async def aclose(self) -> None:
        """Wait for in-flight metrics reports."""
        await self._metrics.drain()
