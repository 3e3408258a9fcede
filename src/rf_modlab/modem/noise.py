"""Gaussian noise source based on the Box-Muller transform."""

import logging

import numpy as np
import numpy.typing as npt

from rf_modlab.modem.models import InvalidParameterError

logger = logging.getLogger(__name__)

# Replaces u1 == 0 so that log(u1) stays finite.
_SMALLEST_UNIFORM = np.finfo(np.float64).tiny


class NoiseSource:
  """Draws independent zero-mean Gaussian samples.

  The uniform generator is injected so that callers control reproducibility;
  the same generator may be shared with other consumers (e.g. symbol
  generation) as long as access is sequential.
  """

  def __init__(self, rng: np.random.Generator | None = None) -> None:
    """Initialize the noise source.

    Args:
      rng: Uniform random generator. A fresh unseeded one is used if None.
    """
    self._rng = rng if rng is not None else np.random.default_rng()

  def sample(self, count: int, std: float) -> npt.NDArray[np.float64]:
    """Draw `count` Gaussian samples with standard deviation `std`.

    Args:
      count: Number of samples.
      std: Standard deviation of the distribution.

    Returns:
      Array of `count` independent samples.
    """
    if count < 0:
      msg = f"Sample count must be non-negative, got {count}"
      raise InvalidParameterError(msg)
    if not np.isfinite(std) or std < 0:
      msg = f"Standard deviation must be finite and non-negative, got {std}"
      raise InvalidParameterError(msg)

    u1 = np.asarray(self._rng.random(count), dtype=np.float64)
    u2 = np.asarray(self._rng.random(count), dtype=np.float64)
    u1 = np.where(u1 > 0.0, u1, _SMALLEST_UNIFORM)

    return std * np.sqrt(-2.0 * np.log(u1)) * np.cos(2.0 * np.pi * u2)

  def add_noise(
    self, signal: npt.NDArray[np.float64], snr_db: float
  ) -> npt.NDArray[np.float64]:
    """Add white Gaussian noise at the given SNR.

    The noise level is derived from the measured power of `signal` itself,
    so the requested SNR is only approximately achieved on short or highly
    variable signals.

    Args:
      signal: Real-valued noiseless samples.
      snr_db: Signal-to-noise ratio in dB.

    Returns:
      Noisy copy of the signal.
    """
    signal_power = float(np.mean(signal**2)) if len(signal) else 0.0
    # Very high SNRs underflow to a zero deviation.
    with np.errstate(over="ignore", under="ignore"):
      noise_std = float(np.sqrt(signal_power) * np.float64(10.0) ** (-snr_db / 20))
    if not np.isfinite(noise_std):
      msg = f"SNR of {snr_db}dB needs a noise level beyond float range"
      raise InvalidParameterError(msg)
    logger.debug(
      f"Adding noise: power={signal_power:.4g}, snr={snr_db}dB, std={noise_std:.4g}"
    )
    return signal + self.sample(len(signal), noise_std)
