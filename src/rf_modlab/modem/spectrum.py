"""Direct discrete Fourier transform spectrum estimate.

The transform is evaluated by direct summation, which costs O(fft_size^2)
operations. The twiddle factors are built for `_BIN_BLOCK` bins at a time,
so memory stays O(_BIN_BLOCK * fft_size) even for large windows. Run time
still grows quadratically; a fast transform can replace `_direct_dft` as long as it keeps the
same bin and normalization semantics.
"""

from __future__ import annotations

import logging
from collections import deque
from typing import Literal

import numpy as np
import numpy.typing as npt

from rf_modlab.modem.models import InvalidParameterError, SpectrumEstimate

logger = logging.getLogger(__name__)

WindowMode = Literal["head", "decimate"]

# Bins per twiddle-factor block in `_direct_dft`.
_BIN_BLOCK = 64


def _direct_dft(
  real: npt.NDArray[np.float64], imag: npt.NDArray[np.float64], num_bins: int
) -> tuple[npt.NDArray[np.float64], npt.NDArray[np.float64]]:
  """Forward DFT of (real + j imag) for the first `num_bins` bins.

  Uses the negative-angle convention X_k = sum x[n] exp(-j 2 pi k n / N).
  """
  size = len(real)
  n = np.arange(size)
  out_real = np.empty(num_bins, dtype=np.float64)
  out_imag = np.empty(num_bins, dtype=np.float64)
  for start in range(0, num_bins, _BIN_BLOCK):
    bins = np.arange(start, min(start + _BIN_BLOCK, num_bins))
    angle = 2 * np.pi * np.outer(bins, n) / size
    cos, sin = np.cos(angle), np.sin(angle)
    # (re + j im)(cos - j sin) = (re cos + im sin) + j (im cos - re sin)
    out_real[bins] = cos @ real + sin @ imag
    out_imag[bins] = cos @ imag - sin @ real
  return out_real, out_imag


class SpectralEstimator:
  """Computes a normalized magnitude spectrum over a fixed-size window."""

  def __init__(self, fft_size: int = 1024, window: WindowMode = "head") -> None:
    """Initialize the estimator.

    Args:
      fft_size: Number of DFT points, a positive even integer.
      window: "head" analyzes the first `fft_size` samples; "decimate" keeps
        every floor(len / fft_size)-th sample so the whole input is covered.
    """
    if fft_size <= 0 or fft_size % 2:
      msg = f"fft_size must be a positive even integer, got {fft_size}"
      raise InvalidParameterError(msg)
    if window not in ("head", "decimate"):
      msg = f"Unknown window mode: {window!r}"
      raise InvalidParameterError(msg)
    self.fft_size = fft_size
    self.window = window

  def _select(
    self, samples: npt.NDArray[np.float64], step: int
  ) -> npt.NDArray[np.float64]:
    """Take up to fft_size samples with the given stride, zero-padding."""
    frame = np.zeros(self.fft_size, dtype=np.float64)
    picked = samples[::step][: self.fft_size]
    frame[: len(picked)] = picked
    return frame

  def estimate(
    self,
    real: npt.ArrayLike,
    imag: npt.ArrayLike | None = None,
    sample_rate: float = 44100,
  ) -> SpectrumEstimate:
    """Estimate the magnitude spectrum of a real or complex sequence.

    Inputs shorter than the window are zero-padded. When decimating, the
    reported frequencies use the effective rate of the analyzed window.

    Args:
      real: Real part of the input.
      imag: Optional imaginary part, same length as `real`.
      sample_rate: Sample rate of the input in Hz.

    Returns:
      Spectrum over bins [0, fft_size / 2).
    """
    if sample_rate <= 0:
      msg = f"Sample rate must be positive, got {sample_rate}"
      raise InvalidParameterError(msg)

    real = np.asarray(real, dtype=np.float64).ravel()
    if imag is None:
      imag = np.zeros_like(real)
    else:
      imag = np.asarray(imag, dtype=np.float64).ravel()
      if len(imag) != len(real):
        msg = (
          f"Real ({len(real)}) and imaginary ({len(imag)}) inputs differ in length"
        )
        raise InvalidParameterError(msg)

    step = 1
    if self.window == "decimate":
      step = max(1, len(real) // self.fft_size)
    window_rate = sample_rate / step

    num_bins = self.fft_size // 2
    re_k, im_k = _direct_dft(
      self._select(real, step), self._select(imag, step), num_bins
    )
    magnitude = np.sqrt(re_k**2 + im_k**2) / self.fft_size
    frequencies = np.arange(num_bins) * window_rate / self.fft_size

    logger.debug(
      f"Spectrum of {len(real)} samples: step={step}, "
      f"resolution={window_rate / self.fft_size:.2f}Hz"
    )
    return SpectrumEstimate(
      magnitude=magnitude,
      frequencies=frequencies,
      fft_size=self.fft_size,
      sample_rate=window_rate,
    )


class WaterfallHistory:
  """Bounded history of magnitude spectra, newest first."""

  def __init__(self, max_lines: int = 20) -> None:
    if max_lines <= 0:
      msg = f"max_lines must be positive, got {max_lines}"
      raise InvalidParameterError(msg)
    self.max_lines = max_lines
    self._lines: deque[npt.NDArray[np.float64]] = deque(maxlen=max_lines)

  def __len__(self) -> int:
    return len(self._lines)

  def push(self, spectrum: SpectrumEstimate) -> None:
    """Add a spectrum on top, dropping the oldest beyond `max_lines`."""
    self._lines.appendleft(np.array(spectrum.magnitude, dtype=np.float64))

  def clear(self) -> None:
    self._lines.clear()

  @property
  def lines(self) -> list[npt.NDArray[np.float64]]:
    return list(self._lines)

  def normalized(self) -> list[npt.NDArray[np.float64]]:
    """Each line mapped to [0, 1] by its own min and max.

    A flat line maps to zeros.
    """
    rows = []
    for line in self._lines:
      low = float(np.min(line)) if len(line) else 0.0
      span = (float(np.max(line)) - low) if len(line) else 0.0
      rows.append((line - low) / (span or 1.0))
    return rows
