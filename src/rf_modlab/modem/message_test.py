"""Tests for message sources."""

import numpy as np
import pytest

from rf_modlab.modem.message import (
  approximate_hilbert,
  prepare_message,
  sine_tone,
  tile_message,
  voice_like_tone,
)
from rf_modlab.modem.models import InvalidParameterError


class TestTones:
  """Tests for the built-in test tones."""

  def test_voice_like_tone_formula(self) -> None:
    """Test the weighted sum of four sines."""
    t = np.arange(1000) / 44100
    fm = 100.0
    expected = (
      0.5 * np.sin(2 * np.pi * fm * t)
      + 0.3 * np.sin(2 * np.pi * 1.5 * fm * t)
      + 0.15 * np.sin(2 * np.pi * 2.2 * fm * t)
      + 0.05 * np.sin(2 * np.pi * 3.7 * fm * t)
    )
    np.testing.assert_allclose(voice_like_tone(t, fm), expected, atol=1e-12)

  def test_sine_tone_starts_at_zero(self) -> None:
    """Test that the sine tone has zero phase at t = 0."""
    t = np.arange(10) / 8000
    assert sine_tone(t, 500.0)[0] == 0.0


class TestApproximateHilbert:
  """Tests for the finite-difference Hilbert approximation."""

  def test_formula(self) -> None:
    """Test h[n] = 0.5 * (m[n] - m[n-2]) for n >= 3."""
    message = np.array([1.0, 2.0, 4.0, 8.0, 16.0, 32.0])
    shifted = approximate_hilbert(message)
    np.testing.assert_allclose(shifted, [0.0, 0.0, 0.0, 3.0, 6.0, 12.0])

  def test_first_three_samples_are_zero(self) -> None:
    """Test that the boundary samples are left at zero."""
    shifted = approximate_hilbert(np.ones(50) * 3.0 + np.arange(50))
    assert np.all(shifted[:3] == 0.0)

  @pytest.mark.parametrize("length", [0, 1, 3])
  def test_short_messages(self, length) -> None:
    """Test that very short messages yield all-zero output."""
    shifted = approximate_hilbert(np.arange(length, dtype=np.float64))
    assert len(shifted) == length
    assert np.all(shifted == 0.0)


class TestTileMessage:
  """Tests for external message tiling."""

  def test_modulo_indexing(self) -> None:
    """Test that short messages repeat from the start."""
    tiled = tile_message([0.1, 0.2, 0.3], 7)
    np.testing.assert_allclose(tiled, [0.1, 0.2, 0.3, 0.1, 0.2, 0.3, 0.1])

  def test_truncates_long_messages(self) -> None:
    """Test that long messages are cut to length."""
    tiled = tile_message(np.linspace(-1, 1, 100), 10)
    assert len(tiled) == 10

  def test_clips_out_of_range(self) -> None:
    """Test that samples outside [-1, 1] are clipped."""
    tiled = tile_message([2.0, -3.0, 0.5], 3)
    np.testing.assert_allclose(tiled, [1.0, -1.0, 0.5])

  @pytest.mark.parametrize("message", [[], [0.1, np.nan], [np.inf]])
  def test_rejects_unusable_messages(self, message) -> None:
    """Test that empty and non-finite messages are refused."""
    with pytest.raises(InvalidParameterError):
      tile_message(message, 10)

  def test_scalar_message_repeats(self) -> None:
    """Test that a single value is treated as a one-sample message."""
    np.testing.assert_allclose(tile_message(0.25, 4), [0.25] * 4)

  def test_rejects_multichannel_message(self) -> None:
    """Test that stereo frames are not interleaved into one channel."""
    stereo = np.column_stack([np.full(50, 0.5), np.full(50, -0.5)])
    with pytest.raises(InvalidParameterError, match="prepare_message"):
      tile_message(stereo, 100)


class TestPrepareMessage:
  """Tests for audio preparation."""

  def test_passthrough_at_same_rate(self) -> None:
    """Test that mono audio at the target rate is unchanged."""
    audio = np.linspace(-0.5, 0.5, 200)
    np.testing.assert_allclose(prepare_message(audio, 44100, 44100), audio)

  def test_downmix_to_mono(self) -> None:
    """Test that stereo audio is averaged to mono."""
    stereo = np.column_stack([np.ones(10), np.zeros(10)])
    mono = prepare_message(stereo, 8000, 8000)
    assert mono.shape == (10,)
    np.testing.assert_allclose(mono, 0.5)

  def test_resampling_length(self) -> None:
    """Test that resampling scales the number of samples."""
    audio = np.sin(2 * np.pi * 200 * np.arange(8000) / 8000)
    resampled = prepare_message(audio, 8000, 44100)
    assert len(resampled) == 44100

  def test_rejects_bad_rates(self) -> None:
    """Test that non-positive rates are refused."""
    with pytest.raises(InvalidParameterError):
      prepare_message(np.zeros(10), 0, 44100)
