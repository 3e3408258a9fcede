"""Signal synthesis, spectral estimation and analysis for the modulation lab."""

from rf_modlab.modem.analysis import MODULATION_INFO, SignalAnalyzer
from rf_modlab.modem.lab import LabResult, SignalLab
from rf_modlab.modem.message import prepare_message
from rf_modlab.modem.models import (
  AnalysisResult,
  ConstellationPoint,
  GeneratedSignal,
  InvalidParameterError,
  ModulationInfo,
  ModulationKind,
  SignalParameters,
  SpectrumEstimate,
)
from rf_modlab.modem.modulation import ModulationEngine
from rf_modlab.modem.noise import NoiseSource
from rf_modlab.modem.spectrum import SpectralEstimator, WaterfallHistory

__all__ = [
  # Data model
  "AnalysisResult",
  "ConstellationPoint",
  "GeneratedSignal",
  "InvalidParameterError",
  "LabResult",
  "ModulationInfo",
  "ModulationKind",
  "SignalParameters",
  "SpectrumEstimate",
  # Processing stages
  "MODULATION_INFO",
  "ModulationEngine",
  "NoiseSource",
  "SignalAnalyzer",
  "SignalLab",
  "SpectralEstimator",
  "WaterfallHistory",
  "prepare_message",
]
