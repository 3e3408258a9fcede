"""Tests for the signal analyzer."""

import numpy as np
import pytest

from rf_modlab.modem.analysis import (
  MODULATION_INFO,
  SNR_CEILING_DB,
  SignalAnalyzer,
  estimate_bandwidth,
  estimate_snr,
  measured_bandwidth,
  render_insights,
  theoretical_bandwidth,
)
from rf_modlab.modem.models import ModulationKind, SignalParameters, SpectrumEstimate
from rf_modlab.modem.modulation import ModulationEngine
from rf_modlab.modem.spectrum import SpectralEstimator


def _spectrum(magnitude, step: float = 10.0) -> SpectrumEstimate:
  magnitude = np.asarray(magnitude, dtype=np.float64)
  return SpectrumEstimate(
    magnitude=magnitude,
    frequencies=np.arange(len(magnitude)) * step,
    fft_size=2 * len(magnitude),
    sample_rate=2 * len(magnitude) * step,
  )


class TestTheoreticalBandwidth:
  """Tests for the per-modulation bandwidth formulas."""

  @pytest.mark.parametrize(
    ("kind", "expected"),
    [
      (ModulationKind.AM, 300.0),
      (ModulationKind.FM, 2 * (80.0 + 150.0)),
      (ModulationKind.BPSK, 120.0),
      (ModulationKind.QPSK, 120.0),
      (ModulationKind.FSK, 2 * 80.0 + 120.0),
      (ModulationKind.LSB, 150.0),
      (ModulationKind.USB, 150.0),
      (ModulationKind.SSB, 150.0),
    ],
  )
  def test_formulas(self, kind, expected) -> None:
    """Test each textbook formula."""
    params = SignalParameters(
      message_freq=150.0, symbol_rate=120.0, frequency_deviation=80.0
    )
    assert theoretical_bandwidth(kind, params) == pytest.approx(expected)


class TestMeasuredBandwidth:
  """Tests for the -10 dB threshold crossing."""

  def test_span_between_two_peaks(self) -> None:
    """Test that the span covers all bins above the threshold."""
    magnitude = np.zeros(100)
    magnitude[20] = 1.0
    magnitude[25] = 0.5
    assert measured_bandwidth(_spectrum(magnitude)) == pytest.approx(50.0)

  def test_threshold_is_strict(self) -> None:
    """Test that a bin exactly at peak / 10 does not count."""
    magnitude = np.zeros(100)
    magnitude[20] = 10.0
    magnitude[30] = 1.0
    assert measured_bandwidth(_spectrum(magnitude)) is None

  def test_single_peak_has_no_span(self) -> None:
    """Test that a lone peak gives no measured bandwidth."""
    magnitude = np.zeros(100)
    magnitude[40] = 1.0
    assert measured_bandwidth(_spectrum(magnitude)) is None

  def test_flat_zero_spectrum(self) -> None:
    """Test that a zero spectrum gives no measured bandwidth."""
    assert measured_bandwidth(_spectrum(np.zeros(100))) is None

  def test_wide_span_rejected(self) -> None:
    """Test that spans reaching half the top frequency are rejected."""
    magnitude = np.zeros(100)
    magnitude[10] = 1.0
    magnitude[60] = 1.0
    assert measured_bandwidth(_spectrum(magnitude)) is None

  def test_min_frequency_comes_from_occupied_bins(self) -> None:
    """Test that the lower edge is the lowest occupied bin, not bin 0."""
    magnitude = np.zeros(100)
    magnitude[30] = 1.0
    magnitude[33] = 1.0
    assert measured_bandwidth(_spectrum(magnitude)) == pytest.approx(30.0)

  def test_falls_back_to_theoretical(self) -> None:
    """Test the fallback when no span can be measured."""
    params = SignalParameters(symbol_rate=250.0)
    bandwidth = estimate_bandwidth(
      _spectrum(np.zeros(100)), ModulationKind.BPSK, params
    )
    assert bandwidth == pytest.approx(250.0)
    assert estimate_bandwidth(None, ModulationKind.BPSK, params) == 250.0

  def test_prefers_measured(self) -> None:
    """Test that a plausible measured span wins over the formula."""
    magnitude = np.zeros(100)
    magnitude[20] = 1.0
    magnitude[22] = 1.0
    bandwidth = estimate_bandwidth(
      _spectrum(magnitude), ModulationKind.AM, SignalParameters()
    )
    assert bandwidth == pytest.approx(20.0)


class TestEstimateSnr:
  """Tests for the detrended-RMS SNR estimate."""

  def test_all_zero_signal(self) -> None:
    """Test that silence is clamped to the floor."""
    assert estimate_snr(np.zeros(1000)) == 0.0

  def test_constant_signal(self) -> None:
    """Test that a noiseless constant hits the ceiling."""
    assert estimate_snr(np.full(1000, 0.7)) == 30.0

  def test_huge_outlier(self) -> None:
    """Test that an injected outlier stays within the clamp range."""
    signal = np.zeros(1000)
    signal[500] = 1e12
    snr = estimate_snr(signal)
    assert 0.0 <= snr <= 30.0

  def test_white_noise_is_low(self) -> None:
    """Test that pure noise yields a value near the floor."""
    noise = np.random.default_rng(0).standard_normal(20000)
    assert estimate_snr(noise) < 3.0

  def test_short_signal(self) -> None:
    """Test that signals without residual samples are handled."""
    snr = estimate_snr([0.5, -0.5, 0.25])
    assert 0.0 <= snr <= 30.0

  def test_known_residual(self) -> None:
    """Test the formula against a hand-built residual."""
    t = np.arange(4000)
    signal = np.where(t % 2 == 0, 1.0, -1.0)
    # Every average over offsets (-4, -2, 0, 2, 4) equals the sample itself.
    assert estimate_snr(signal) == 30.0

  def test_near_noiseless_am(self) -> None:
    """Test that a near-noiseless AM signal is limited by the detrend residual.

    The five-point average leaks about 8% of the 1 kHz carrier and its
    sidebands into the residual, so the estimate settles near 22 dB.
    """
    signal = ModulationEngine(seed=1).generate("am", {"snr_db": 100.0})
    snr = estimate_snr(signal.real)
    assert snr == pytest.approx(22.0, abs=0.3)
    assert snr < SNR_CEILING_DB


class TestSignalAnalyzer:
  """Tests for SignalAnalyzer.analyze."""

  @pytest.mark.parametrize("kind", list(ModulationKind))
  def test_analyze_all_kinds(self, kind) -> None:
    """Test that every modulation gets a complete result."""
    params = SignalParameters(modulation=kind, duration=0.1)
    signal = ModulationEngine(seed=6).generate(kind, params)
    spectrum = SpectralEstimator().estimate(
      signal.real, sample_rate=signal.sample_rate
    )
    result = SignalAnalyzer().analyze(signal, spectrum, params)

    assert result.modulation_name == MODULATION_INFO[kind].name
    assert result.bandwidth_hz >= 0.0
    assert 0.0 <= result.snr_db <= 30.0
    assert result.info == MODULATION_INFO[kind]
    assert result.modulation_name in result.insights

  def test_static_helpers(self) -> None:
    """Test that the estimators are reachable through the analyzer."""
    analyzer = SignalAnalyzer()
    assert analyzer.estimate_snr(np.zeros(10)) == 0.0
    assert analyzer.theoretical_bandwidth(
      ModulationKind.AM, SignalParameters()
    ) == pytest.approx(200.0)

  def test_insights_rate_line(self) -> None:
    """Test that digital kinds report the symbol rate, analog the tone."""
    params = SignalParameters(symbol_rate=250, message_freq=120, carrier_freq=1500)
    digital = render_insights(ModulationKind.QPSK, params)
    analog = render_insights(ModulationKind.FM, params)

    assert "Symbol Rate: 250 symbols/second" in digital
    assert "Message Frequency" not in digital
    assert "Message Frequency: 120 Hz" in analog
    assert "Carrier Frequency: 1500 Hz" in analog

  def test_every_kind_has_info(self) -> None:
    """Test that the educational table covers all modulations."""
    assert set(MODULATION_INFO) == set(ModulationKind)
