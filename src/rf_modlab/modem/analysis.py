"""Coarse signal analysis: bandwidth, SNR and educational text.

The estimates are deliberately simple heuristics for a teaching tool:
- Bandwidth: a theoretical formula per modulation, replaced by the -10 dB
  span of the measured spectrum when that span looks plausible.
- SNR: ratio between the signal RMS and the RMS of a detrended residual,
  clamped to [0, 30] dB.
"""

from __future__ import annotations

import logging

import numpy as np
import numpy.typing as npt

from rf_modlab.modem.models import (
  AnalysisResult,
  GeneratedSignal,
  ModulationInfo,
  ModulationKind,
  SignalParameters,
  SpectrumEstimate,
)

logger = logging.getLogger(__name__)

SNR_FLOOR_DB = 0.0
SNR_CEILING_DB = 30.0
SNR_EPSILON = 1e-10

# Magnitude ratio below the peak that still counts as occupied (-10 dB).
BANDWIDTH_THRESHOLD_RATIO = 10.0

# Offsets of the moving average used to detrend the signal.
DETREND_OFFSETS = (-4, -2, 0, 2, 4)

MODULATION_INFO: dict[ModulationKind, ModulationInfo] = {
  ModulationKind.AM: ModulationInfo(
    name="Amplitude Modulation (AM)",
    description=(
      "Amplitude modulation varies the amplitude of the carrier wave in "
      "proportion to the message signal. It's one of the oldest and simplest "
      "modulation techniques."
    ),
    bandwidth="Twice the highest frequency in the message signal (2 × fm)",
    applications="AM radio broadcasting (535-1705 kHz), aircraft communication",
    advantages=(
      "Simple to implement and demodulate, requires less precise frequency "
      "control"
    ),
    disadvantages="Inefficient power usage, susceptible to noise and interference",
  ),
  ModulationKind.FM: ModulationInfo(
    name="Frequency Modulation (FM)",
    description=(
      "Frequency modulation varies the frequency of the carrier wave in "
      "proportion to the message signal, while keeping the amplitude constant."
    ),
    bandwidth=(
      "Typically 2 × (Δf + fm) where Δf is the peak frequency deviation and fm "
      "is the maximum message frequency"
    ),
    applications=(
      "FM radio broadcasting (88-108 MHz), police and emergency services "
      "communications"
    ),
    advantages="Better noise immunity than AM, higher fidelity audio reproduction",
    disadvantages="Requires more bandwidth than AM, more complex demodulation",
  ),
  ModulationKind.BPSK: ModulationInfo(
    name="Binary Phase Shift Keying (BPSK)",
    description=(
      "BPSK changes the phase of the carrier wave between two values (0° and "
      "180°) to represent binary data (0s and 1s)."
    ),
    bandwidth="Approximately equal to the symbol rate",
    applications=(
      "Satellite communications, low-rate wireless systems, deep space telemetry"
    ),
    advantages=(
      "Most power-efficient form of PSK, robust against noise and interference"
    ),
    disadvantages="Low spectral efficiency (1 bit per symbol)",
  ),
  ModulationKind.QPSK: ModulationInfo(
    name="Quadrature Phase Shift Keying (QPSK)",
    description=(
      "QPSK uses four different phase states (45°, 135°, 225°, and 315°) to "
      "represent dibits (00, 01, 10, 11)."
    ),
    bandwidth="Approximately equal to the symbol rate",
    applications="Satellite communications, cellular systems, Wi-Fi, cable modems",
    advantages=(
      "Twice the data rate of BPSK for the same bandwidth, good balance of "
      "performance and complexity"
    ),
    disadvantages="More sensitive to phase noise than BPSK",
  ),
  ModulationKind.FSK: ModulationInfo(
    name="Frequency Shift Keying (FSK)",
    description=(
      "FSK varies the frequency of the carrier wave between two discrete "
      "values to represent binary data (0s and 1s)."
    ),
    bandwidth="Approximately 2 × Δf + symbol rate where Δf is the frequency deviation",
    applications="Low-frequency radio systems, RFID, early computer modems",
    advantages=(
      "Simple implementation, robust against amplitude variations and distortion"
    ),
    disadvantages="Less spectral efficiency compared to phase-based modulations",
  ),
  ModulationKind.LSB: ModulationInfo(
    name="Lower Sideband (LSB)",
    description=(
      "LSB is a form of single-sideband modulation that transmits only the "
      "lower sideband of the AM signal, suppressing the carrier and upper "
      "sideband."
    ),
    bandwidth="Equal to the bandwidth of the message signal",
    applications=(
      "Amateur radio voice communications, maritime and aviation communications"
    ),
    advantages="More power-efficient than full AM, reduced bandwidth requirements",
    disadvantages="More complex to generate and demodulate than AM",
  ),
  ModulationKind.USB: ModulationInfo(
    name="Upper Sideband (USB)",
    description=(
      "USB is a form of single-sideband modulation that transmits only the "
      "upper sideband of the AM signal, suppressing the carrier and lower "
      "sideband."
    ),
    bandwidth="Equal to the bandwidth of the message signal",
    applications=(
      "Amateur radio voice communications, military radio, shortwave "
      "broadcasting"
    ),
    advantages="More power-efficient than full AM, reduced bandwidth requirements",
    disadvantages="More complex to generate and demodulate than AM",
  ),
  ModulationKind.SSB: ModulationInfo(
    name="Single Sideband (SSB)",
    description=(
      "SSB is a form of amplitude modulation that transmits only one sideband "
      "(either upper or lower) of the AM signal, suppressing the carrier and "
      "the other sideband."
    ),
    bandwidth="Equal to the bandwidth of the message signal",
    applications=(
      "Amateur radio, maritime and aviation communications, point-to-point "
      "radio links"
    ),
    advantages="Most power-efficient form of AM, halves the bandwidth requirement",
    disadvantages=(
      "Requires more complex equipment, receiver must have accurate frequency "
      "control"
    ),
  ),
}


def theoretical_bandwidth(kind: ModulationKind, params: SignalParameters) -> float:
  """Textbook occupied bandwidth in Hz for the given modulation."""
  match kind:
    case ModulationKind.AM:
      return 2 * params.message_freq
    case ModulationKind.FM:
      # Carson's rule
      return 2 * (params.frequency_deviation + params.message_freq)
    case ModulationKind.BPSK | ModulationKind.QPSK:
      return params.symbol_rate
    case ModulationKind.FSK:
      return 2 * params.frequency_deviation + params.symbol_rate
    case _:
      return params.message_freq


def measured_bandwidth(spectrum: SpectrumEstimate) -> float | None:
  """Span of the bins strictly above peak / 10, or None if implausible.

  The span is rejected when it is not positive or reaches half of the
  highest analyzed frequency (about half the Nyquist frequency).
  """
  magnitude = np.asarray(spectrum.magnitude, dtype=np.float64)
  frequencies = np.asarray(spectrum.frequencies, dtype=np.float64)
  if magnitude.size == 0 or not np.all(np.isfinite(magnitude)):
    return None

  threshold = float(np.max(magnitude)) / BANDWIDTH_THRESHOLD_RATIO
  occupied = frequencies[magnitude > threshold]
  if occupied.size == 0:
    return None

  span = float(np.max(occupied) - np.min(occupied))
  if 0 < span < frequencies[-1] / 2:
    return span
  return None


def estimate_bandwidth(
  spectrum: SpectrumEstimate | None, kind: ModulationKind, params: SignalParameters
) -> float:
  """Measured bandwidth when plausible, theoretical bandwidth otherwise."""
  theoretical = theoretical_bandwidth(kind, params)
  if spectrum is None:
    return theoretical
  measured = measured_bandwidth(spectrum)
  if measured is None:
    logger.debug(f"Using theoretical bandwidth {theoretical:.1f}Hz for {kind.value}")
    return theoretical
  return measured


def _rms(values: npt.NDArray[np.float64]) -> float:
  return float(np.sqrt(np.mean(values**2))) if values.size else 0.0


def estimate_snr(samples: npt.ArrayLike) -> float:
  """Estimate the SNR in dB from the signal alone.

  The noise is approximated by subtracting a five-point moving average
  (offsets -4, -2, 0, 2, 4) from each sample. Samples within 4 of either
  edge have no residual. The result is clamped to [0, 30] dB.

  Args:
    samples: Real-valued signal.

  Returns:
    SNR estimate in dB.
  """
  signal = np.asarray(samples, dtype=np.float64).ravel()
  signal_rms = _rms(signal)
  if not np.isfinite(signal_rms) or signal_rms == 0.0:
    return SNR_FLOOR_DB

  reach = max(DETREND_OFFSETS)
  count = len(signal) - 2 * reach
  residual = np.zeros(max(count, 0), dtype=np.float64)
  if count > 0:
    average = sum(
      signal[reach + offset : reach + offset + count] for offset in DETREND_OFFSETS
    ) / len(DETREND_OFFSETS)
    residual = signal[reach : reach + count] - average

  snr_db = 20 * np.log10(signal_rms / (_rms(residual) + SNR_EPSILON))
  return float(np.clip(snr_db, SNR_FLOOR_DB, SNR_CEILING_DB))


def render_insights(kind: ModulationKind, params: SignalParameters) -> str:
  """Plain-text educational summary for a modulation and its parameters."""
  info = MODULATION_INFO[kind]
  if kind.is_symbol_based:
    rate_line = f"• Symbol Rate: {params.symbol_rate:g} symbols/second"
  else:
    rate_line = f"• Message Frequency: {params.message_freq:g} Hz"

  return "\n".join(
    [
      f"{info.name}: {info.description}",
      "",
      "Key Characteristics:",
      f"• Carrier Frequency: {params.carrier_freq:g} Hz",
      rate_line,
      f"• Theoretical Bandwidth: {info.bandwidth}",
      "",
      f"Applications: {info.applications}",
      "",
      f"Advantages: {info.advantages}",
      f"Disadvantages: {info.disadvantages}",
    ]
  )


class SignalAnalyzer:
  """Derives bandwidth and SNR estimates plus educational text."""

  def analyze(
    self,
    signal: GeneratedSignal,
    spectrum: SpectrumEstimate | None,
    params: SignalParameters,
  ) -> AnalysisResult:
    """Analyze a generated signal and its spectrum.

    Args:
      signal: Output of the modulation engine.
      spectrum: Spectrum of `signal.real`, or None to skip the measurement.
      params: Parameters the signal was generated with.

    Returns:
      The analysis result.
    """
    kind = signal.modulation
    info = MODULATION_INFO[kind]
    bandwidth = estimate_bandwidth(spectrum, kind, params)
    snr_db = estimate_snr(signal.real)
    logger.debug(f"{info.name}: bandwidth={bandwidth:.1f}Hz, snr={snr_db:.1f}dB")

    return AnalysisResult(
      modulation_name=info.name,
      bandwidth_hz=bandwidth,
      snr_db=snr_db,
      info=info,
      insights=render_insights(kind, params),
    )

  estimate_bandwidth = staticmethod(estimate_bandwidth)
  estimate_snr = staticmethod(estimate_snr)
  theoretical_bandwidth = staticmethod(theoretical_bandwidth)
