"""Message sources for the analog and single-sideband modulations.

Provides the built-in test tones, the short finite-difference Hilbert
approximation used to build SSB signals, and helpers that turn decoded audio
into a message sequence at the engine's sample rate.
"""

import logging

import numpy as np
import numpy.typing as npt
import scipy.signal

from rf_modlab.modem.models import InvalidParameterError

logger = logging.getLogger(__name__)

# (relative frequency, amplitude) of the voice-like test tone components.
VOICE_COMPONENTS: tuple[tuple[float, float], ...] = (
  (1.0, 0.5),
  (1.5, 0.3),
  (2.2, 0.15),
  (3.7, 0.05),
)


def sine_tone(
  time: npt.NDArray[np.float64], freq_hz: float
) -> npt.NDArray[np.float64]:
  """Single sine test tone."""
  return np.sin(2 * np.pi * freq_hz * time)


def voice_like_tone(
  time: npt.NDArray[np.float64], freq_hz: float
) -> npt.NDArray[np.float64]:
  """Weighted sum of four harmonically related sines.

  Args:
    time: Time stamps in seconds.
    freq_hz: Fundamental frequency in Hz.

  Returns:
    Message samples, bounded by 1 in magnitude.
  """
  message = np.zeros_like(time, dtype=np.float64)
  for ratio, amplitude in VOICE_COMPONENTS:
    message += amplitude * np.sin(2 * np.pi * ratio * freq_hz * time)
  return message


def approximate_hilbert(
  message: npt.NDArray[np.float64],
) -> npt.NDArray[np.float64]:
  """Approximate Hilbert transform h[n] = 0.5 * (m[n] - m[n-2]).

  The first three outputs are left at zero. This boundary artifact is part
  of the approximation and is kept as is.

  Args:
    message: Message samples.

  Returns:
    Approximately 90-degree shifted message, same length as the input.
  """
  shifted = np.zeros(len(message), dtype=np.float64)
  if len(message) > 3:
    shifted[3:] = 0.5 * (message[3:] - message[1:-2])
  return shifted


def tile_message(
  message: npt.ArrayLike, num_samples: int
) -> npt.NDArray[np.float64]:
  """Repeat an external message so that sample n is message[n % len].

  Values outside [-1, 1] are clipped.

  Args:
    message: External message samples.
    num_samples: Required output length.

  Returns:
    Message of exactly `num_samples` samples.

  Raises:
    InvalidParameterError: If the message is empty, not finite or not
      one-dimensional.
  """
  samples = np.atleast_1d(np.asarray(message, dtype=np.float64))
  if samples.ndim > 1:
    msg = (
      f"External message must be one-dimensional, got shape {samples.shape}; "
      "use prepare_message to downmix multichannel audio"
    )
    raise InvalidParameterError(msg)
  if samples.size == 0:
    msg = "External message must contain at least one sample"
    raise InvalidParameterError(msg)
  if not np.all(np.isfinite(samples)):
    msg = "External message contains NaN or infinite samples"
    raise InvalidParameterError(msg)

  peak = float(np.max(np.abs(samples)))
  if peak > 1.0:
    logger.warning(f"External message peaks at {peak:.3f}, clipping to [-1, 1]")
    samples = np.clip(samples, -1.0, 1.0)

  return samples[np.arange(num_samples) % samples.size]


def prepare_message(
  audio: npt.ArrayLike, input_sample_rate: int, sample_rate: int
) -> npt.NDArray[np.float64]:
  """Convert decoded audio into a mono message at `sample_rate`.

  Args:
    audio: Audio samples, mono (n,) or multi-channel (n, channels).
    input_sample_rate: Audio sample rate in Hz.
    sample_rate: Target sample rate in Hz.

  Returns:
    Mono float64 samples at the target rate.
  """
  if input_sample_rate <= 0 or sample_rate <= 0:
    msg = (
      f"Sample rates must be positive, got {input_sample_rate} -> {sample_rate}"
    )
    raise InvalidParameterError(msg)

  samples = np.asarray(audio, dtype=np.float64)
  if samples.ndim > 1:
    logger.info("Converting multi-channel message to mono...")
    samples = np.mean(samples, axis=1)

  if input_sample_rate == sample_rate:
    return samples

  # Polyphase resampling
  gcd = np.gcd(input_sample_rate, sample_rate)
  up = sample_rate // gcd
  down = input_sample_rate // gcd
  return scipy.signal.resample_poly(samples, up, down)
