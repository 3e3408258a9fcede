"""Data model shared by the modulation, spectrum and analysis stages.

All entities are created fresh per request and are immutable once built:
- SignalParameters: validated generation inputs
- GeneratedSignal: time base, real/imaginary samples and constellation
- SpectrumEstimate: magnitude spectrum and its frequency axis
- AnalysisResult: bandwidth/SNR estimates and educational text
"""

from __future__ import annotations

from enum import StrEnum
from typing import Literal

import numpy as np
from pydantic import BaseModel, Field, model_validator

# Largest SNR magnitude whose noise scale is representable as float64.
SNR_LIMIT_DB = 300.0


class InvalidParameterError(ValueError):
  """Raised when generation or analysis inputs are not usable."""


class ModulationKind(StrEnum):
  """Supported modulation schemes."""

  AM = "am"
  FM = "fm"
  BPSK = "bpsk"
  QPSK = "qpsk"
  FSK = "fsk"
  LSB = "lsb"
  USB = "usb"
  SSB = "ssb"

  @classmethod
  def parse(cls, value: str | ModulationKind) -> ModulationKind:
    """Parse a modulation name case-insensitively.

    Raises:
      InvalidParameterError: If the name is not a known modulation.
    """
    if isinstance(value, cls):
      return value
    try:
      return cls(str(value).strip().lower())
    except ValueError:
      msg = f"Unknown modulation kind: {value!r}"
      raise InvalidParameterError(msg) from None

  @property
  def is_symbol_based(self) -> bool:
    """True for digital modulations that transmit discrete symbols."""
    return self in (ModulationKind.BPSK, ModulationKind.QPSK, ModulationKind.FSK)

  @property
  def is_single_sideband(self) -> bool:
    """True for LSB, USB and the generic SSB modulation."""
    return self in (ModulationKind.LSB, ModulationKind.USB, ModulationKind.SSB)


class SignalParameters(BaseModel):
  """Inputs of a single generation call.

  Attributes:
    modulation: Modulation scheme.
    carrier_freq: Carrier frequency in Hz.
    symbol_rate: Symbol rate in Hz for digital modulations.
    message_freq: Test-tone frequency in Hz for analog modulations.
    snr_db: Target signal-to-noise ratio in dB, within +-SNR_LIMIT_DB.
    modulation_index: Modulation index (unitless).
    frequency_deviation: Peak frequency deviation in Hz (FM/FSK).
    sample_rate: Sample rate in Hz.
    duration: Signal duration in seconds.
    sideband: Sideband used by the generic SSB modulation.
  """

  modulation: ModulationKind = ModulationKind.AM
  carrier_freq: float = Field(1000.0, gt=0.0, allow_inf_nan=False)
  symbol_rate: float = Field(100.0, gt=0.0, allow_inf_nan=False)
  message_freq: float = Field(100.0, gt=0.0, allow_inf_nan=False)
  snr_db: float = Field(20.0, ge=-SNR_LIMIT_DB, le=SNR_LIMIT_DB)
  modulation_index: float = Field(0.5, ge=0.0, le=1.0)
  frequency_deviation: float = Field(100.0, ge=0.0, allow_inf_nan=False)
  sample_rate: int = Field(44100, gt=0)
  duration: float = Field(1.0, gt=0.0, allow_inf_nan=False)
  sideband: Literal["USB", "LSB"] = "USB"

  model_config = {"frozen": True}

  @property
  def num_samples(self) -> int:
    """Number of samples covering the requested duration."""
    return round(self.sample_rate * self.duration)

  @property
  def samples_per_symbol(self) -> int:
    return int(self.sample_rate // self.symbol_rate)

  @property
  def num_symbols(self) -> int:
    """Number of whole symbols that fit in the signal."""
    samples_per_symbol = self.samples_per_symbol
    if samples_per_symbol < 1:
      return 0
    return self.num_samples // samples_per_symbol


class ConstellationPoint(BaseModel):
  """In-phase (x) and quadrature (y) coordinate of one transmitted symbol."""

  x: float
  y: float

  model_config = {"frozen": True}


class GeneratedSignal(BaseModel):
  """Output of the modulation engine.

  Attributes:
    modulation: Modulation that produced the samples.
    sample_rate: Sample rate in Hz.
    time: Time stamps in seconds, spaced by 1 / sample_rate.
    real: Real-valued (noisy) samples.
    imag: Quadrature samples, all-zero when the modulation has none.
    constellation: One point per symbol for digital modulations, else None.
  """

  modulation: ModulationKind
  sample_rate: int
  time: np.ndarray
  real: np.ndarray
  imag: np.ndarray
  constellation: list[ConstellationPoint] | None = None

  model_config = {"frozen": True, "arbitrary_types_allowed": True}

  @model_validator(mode="after")
  def _check_lengths(self) -> GeneratedSignal:
    if not len(self.time) == len(self.real) == len(self.imag):
      msg = (
        f"Sample sequences differ in length: time={len(self.time)}, "
        f"real={len(self.real)}, imag={len(self.imag)}"
      )
      raise ValueError(msg)
    return self

  @property
  def num_samples(self) -> int:
    return len(self.time)


class SpectrumEstimate(BaseModel):
  """Magnitude spectrum over the first half of the DFT bins.

  Attributes:
    magnitude: Normalized magnitudes, length fft_size / 2.
    frequencies: Bin frequencies in Hz, strictly increasing.
    fft_size: Number of DFT points.
    sample_rate: Rate of the analyzed window in Hz.
  """

  magnitude: np.ndarray
  frequencies: np.ndarray
  fft_size: int
  sample_rate: float

  model_config = {"frozen": True, "arbitrary_types_allowed": True}

  @model_validator(mode="after")
  def _check_lengths(self) -> SpectrumEstimate:
    if len(self.magnitude) != len(self.frequencies):
      msg = (
        f"Magnitude ({len(self.magnitude)}) and frequency "
        f"({len(self.frequencies)}) sequences differ in length"
      )
      raise ValueError(msg)
    return self

  @property
  def peak_frequency(self) -> float:
    """Frequency of the strongest bin in Hz."""
    return float(self.frequencies[int(np.argmax(self.magnitude))])

  def to_db(self, floor: float = 1e-6) -> np.ndarray:
    """Magnitudes in dB, with values below `floor` clamped to it."""
    return 20 * np.log10(np.maximum(self.magnitude, floor))


class ModulationInfo(BaseModel):
  """Static educational description of a modulation scheme."""

  name: str
  description: str
  bandwidth: str
  applications: str
  advantages: str
  disadvantages: str

  model_config = {"frozen": True}


class AnalysisResult(BaseModel):
  """Coarse estimates and educational text for one generated signal.

  Attributes:
    modulation_name: Display name of the modulation.
    bandwidth_hz: Estimated occupied bandwidth in Hz.
    snr_db: Estimated SNR in dB, clamped to [0, 30].
    info: Static description of the modulation.
    insights: Plain-text summary combining the description and parameters.
  """

  modulation_name: str
  bandwidth_hz: float = Field(ge=0.0)
  snr_db: float = Field(ge=0.0, le=30.0)
  info: ModulationInfo
  insights: str

  model_config = {"frozen": True}
