"""Complete lab chain: generate -> estimate spectrum -> analyze.

SignalLab wires the modulation engine, the spectral estimator and the
analyzer together and keeps the waterfall history that a visualization
layer renders across successive runs.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

import numpy.typing as npt
from pydantic import BaseModel

from rf_modlab.config import Config
from rf_modlab.modem.analysis import SignalAnalyzer
from rf_modlab.modem.models import (
  AnalysisResult,
  GeneratedSignal,
  ModulationKind,
  SignalParameters,
  SpectrumEstimate,
)
from rf_modlab.modem.modulation import ModulationEngine, resolve_parameters
from rf_modlab.modem.spectrum import SpectralEstimator, WaterfallHistory

logger = logging.getLogger(__name__)


class LabResult(BaseModel):
  """Everything a visualization layer needs for one run."""

  signal: GeneratedSignal
  spectrum: SpectrumEstimate
  analysis: AnalysisResult

  model_config = {"frozen": True}


class SignalLab:
  """Runs the generation, spectrum and analysis stages for each request."""

  def __init__(self, config: Config | None = None) -> None:
    """Initialize the lab.

    Args:
      config: Lab configuration; defaults are used if None.
    """
    self.config = config or Config()
    self.engine = ModulationEngine(seed=self.config.seed)
    self.estimator = SpectralEstimator(
      fft_size=self.config.fft_size, window=self.config.spectrum_window
    )
    self.analyzer = SignalAnalyzer()
    self.waterfall = WaterfallHistory(max_lines=self.config.waterfall_lines)

  def process(
    self,
    kind: str | ModulationKind | None,
    params: SignalParameters | Mapping[str, Any] | None = None,
    message: npt.ArrayLike | None = None,
  ) -> LabResult:
    """Generate a signal, estimate its spectrum and analyze it.

    Args:
      kind: Modulation name; None uses `params.modulation`.
      params: Generation parameters (model or mapping).
      message: Optional external message in [-1, 1].

    Returns:
      Signal, spectrum and analysis of this run.

    Raises:
      InvalidParameterError: If the kind or parameters are invalid.
    """
    params = resolve_parameters(params)
    signal = self.engine.generate(kind, params, message)
    params = params.model_copy(update={"modulation": signal.modulation})

    spectrum = self.estimator.estimate(
      signal.real, sample_rate=signal.sample_rate
    )
    self.waterfall.push(spectrum)
    analysis = self.analyzer.analyze(signal, spectrum, params)

    logger.info(
      f"{analysis.modulation_name}: bandwidth={analysis.bandwidth_hz:.1f}Hz, "
      f"snr={analysis.snr_db:.1f}dB, peak={spectrum.peak_frequency:.1f}Hz"
    )
    return LabResult(signal=signal, spectrum=spectrum, analysis=analysis)
