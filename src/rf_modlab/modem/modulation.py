"""Modulation engine for the supported analog and digital schemes.

Each modulation is a pure function registered in a dispatch table keyed by
ModulationKind. A modulator receives a `_Context` (time base, parameters,
message, random generator) and returns the noiseless real output, the
quadrature branch and the constellation, if any. The engine validates the
inputs, runs the modulator and adds SNR-scaled noise to the real output.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import Any, NamedTuple

import numpy as np
import numpy.typing as npt
from pydantic import ValidationError

from rf_modlab.modem.message import (
  approximate_hilbert,
  sine_tone,
  tile_message,
  voice_like_tone,
)
from rf_modlab.modem.models import (
  ConstellationPoint,
  GeneratedSignal,
  InvalidParameterError,
  ModulationKind,
  SignalParameters,
)
from rf_modlab.modem.noise import NoiseSource

logger = logging.getLogger(__name__)

_QPSK_LEVEL = 1 / np.sqrt(2)

# Dibit -> (I, Q), walking the unit circle from 45 degrees.
QPSK_MAP: tuple[tuple[float, float], ...] = (
  (_QPSK_LEVEL, _QPSK_LEVEL),
  (-_QPSK_LEVEL, _QPSK_LEVEL),
  (-_QPSK_LEVEL, -_QPSK_LEVEL),
  (_QPSK_LEVEL, -_QPSK_LEVEL),
)


class _Context(NamedTuple):
  params: SignalParameters
  time: npt.NDArray[np.float64]
  message: npt.NDArray[np.float64] | None
  rng: np.random.Generator


class _Waveform(NamedTuple):
  real: npt.NDArray[np.float64]
  imag: npt.NDArray[np.float64]
  constellation: list[ConstellationPoint] | None = None


Modulator = Callable[[_Context], _Waveform]


def _carrier_phase(ctx: _Context) -> npt.NDArray[np.float64]:
  return 2 * np.pi * ctx.params.carrier_freq * ctx.time


def _symbol_index(ctx: _Context, num_symbols: int) -> npt.NDArray[np.intp]:
  """Symbol index of every sample; trailing samples reuse the last symbol."""
  index = np.arange(len(ctx.time)) // ctx.params.samples_per_symbol
  return np.minimum(index, num_symbols - 1)


def _analog_message(ctx: _Context) -> npt.NDArray[np.float64]:
  """External message, else the voice-like tone for sidebands or a sine."""
  if ctx.message is not None:
    return ctx.message
  if ctx.params.modulation.is_single_sideband:
    return voice_like_tone(ctx.time, ctx.params.message_freq)
  return sine_tone(ctx.time, ctx.params.message_freq)


def modulate_am(ctx: _Context) -> _Waveform:
  """s = (1 + k m) cos(2 pi fc t)."""
  message = _analog_message(ctx)
  real = (1 + ctx.params.modulation_index * message) * np.cos(_carrier_phase(ctx))
  return _Waveform(real, np.zeros_like(real))


def modulate_fm(ctx: _Context) -> _Waveform:
  """s = cos(2 pi fc t + 2 pi df k integral(m)).

  The integral is a running sum of the message scaled by 1 / sample_rate and
  includes the current sample.
  """
  params = ctx.params
  message = _analog_message(ctx)
  integrated = np.cumsum(message) / params.sample_rate
  phase = (
    _carrier_phase(ctx)
    + 2 * np.pi * params.frequency_deviation * params.modulation_index * integrated
  )
  real = np.cos(phase)
  return _Waveform(real, np.zeros_like(real))


def modulate_bpsk(ctx: _Context) -> _Waveform:
  """Antipodal bits on a cosine carrier, one constellation point per bit."""
  num_symbols = ctx.params.num_symbols
  bits = np.where(ctx.rng.random(num_symbols) > 0.5, 1.0, -1.0)

  real = bits[_symbol_index(ctx, num_symbols)] * np.cos(_carrier_phase(ctx))
  constellation = [ConstellationPoint(x=float(bit), y=0.0) for bit in bits]
  return _Waveform(real, np.zeros_like(real), constellation)


def modulate_qpsk(ctx: _Context) -> _Waveform:
  """s = I cos(2 pi fc t) - Q sin(2 pi fc t), symbols on the unit circle.

  The quadrature branch Q sin(2 pi fc t) is returned as the imaginary part.
  """
  num_symbols = ctx.params.num_symbols
  dibits = ctx.rng.integers(0, len(QPSK_MAP), num_symbols)
  levels = np.asarray(QPSK_MAP)[dibits]

  index = _symbol_index(ctx, num_symbols)
  phase = _carrier_phase(ctx)
  in_phase = levels[index, 0] * np.cos(phase)
  quadrature = levels[index, 1] * np.sin(phase)

  constellation = [
    ConstellationPoint(x=float(i), y=float(q)) for i, q in levels
  ]
  return _Waveform(in_phase - quadrature, quadrature, constellation)


def modulate_fsk(ctx: _Context) -> _Waveform:
  """Binary FSK: bit 0 at fc - df, bit 1 at fc + df."""
  params = ctx.params
  num_symbols = params.num_symbols
  bits = ctx.rng.random(num_symbols) > 0.5

  freqs = np.where(
    bits,
    params.carrier_freq + params.frequency_deviation,
    params.carrier_freq - params.frequency_deviation,
  )
  real = np.cos(2 * np.pi * freqs[_symbol_index(ctx, num_symbols)] * ctx.time)
  constellation = [
    ConstellationPoint(x=1.0 if bit else -1.0, y=0.0) for bit in bits
  ]
  return _Waveform(real, np.zeros_like(real), constellation)


def _single_sideband(ctx: _Context, sign: float) -> _Waveform:
  """s = m cos(2 pi fc t) + sign * h(m) sin(2 pi fc t).

  sign = -1 selects the lower sideband, +1 the upper one. The Hilbert
  transformed message is returned as the imaginary part.
  """
  message = _analog_message(ctx)
  shifted = approximate_hilbert(message)
  phase = _carrier_phase(ctx)
  real = message * np.cos(phase) + sign * shifted * np.sin(phase)
  return _Waveform(real, shifted)


def modulate_lsb(ctx: _Context) -> _Waveform:
  return _single_sideband(ctx, sign=-1.0)


def modulate_usb(ctx: _Context) -> _Waveform:
  return _single_sideband(ctx, sign=1.0)


def modulate_ssb(ctx: _Context) -> _Waveform:
  """Single sideband with the sideband chosen by `params.sideband`."""
  return _single_sideband(ctx, sign=-1.0 if ctx.params.sideband == "LSB" else 1.0)


MODULATORS: dict[ModulationKind, Modulator] = {
  ModulationKind.AM: modulate_am,
  ModulationKind.FM: modulate_fm,
  ModulationKind.BPSK: modulate_bpsk,
  ModulationKind.QPSK: modulate_qpsk,
  ModulationKind.FSK: modulate_fsk,
  ModulationKind.LSB: modulate_lsb,
  ModulationKind.USB: modulate_usb,
  ModulationKind.SSB: modulate_ssb,
}


def resolve_parameters(
  params: SignalParameters | Mapping[str, Any] | None,
) -> SignalParameters:
  """Build SignalParameters from a model, a plain mapping or None.

  Raises:
    InvalidParameterError: If the mapping fails validation.
  """
  if params is None:
    return SignalParameters()
  if isinstance(params, SignalParameters):
    return params
  try:
    return SignalParameters(**params)
  except ValidationError as exc:
    msg = f"Invalid signal parameters: {exc}"
    raise InvalidParameterError(msg) from exc


def validate_parameters(kind: ModulationKind, params: SignalParameters) -> None:
  """Check the constraints that depend on the modulation kind.

  Raises:
    InvalidParameterError: If no signal can be generated.
  """
  if params.num_samples < 1:
    msg = (
      f"Duration {params.duration}s at {params.sample_rate}Hz yields no samples"
    )
    raise InvalidParameterError(msg)

  if kind.is_symbol_based:
    if params.samples_per_symbol < 1:
      msg = (
        f"Symbol rate {params.symbol_rate}Hz exceeds the sample rate "
        f"{params.sample_rate}Hz"
      )
      raise InvalidParameterError(msg)
    if params.num_symbols < 1:
      msg = (
        f"Signal of {params.num_samples} samples is shorter than one symbol "
        f"({params.samples_per_symbol} samples)"
      )
      raise InvalidParameterError(msg)


class ModulationEngine:
  """Generates modulated test signals.

  The engine owns one random generator, shared by symbol generation and the
  noise source. Sequential calls draw from that generator; a per-call seed
  gives an independent, reproducible draw without touching it.
  """

  def __init__(self, seed: int | np.random.Generator | None = None) -> None:
    """Initialize the engine.

    Args:
      seed: Seed or generator for the shared random stream.
    """
    self._rng = np.random.default_rng(seed)
    self._noise = NoiseSource(self._rng)

  def generate(
    self,
    kind: str | ModulationKind | None,
    params: SignalParameters | Mapping[str, Any] | None = None,
    message: npt.ArrayLike | None = None,
    *,
    seed: int | None = None,
  ) -> GeneratedSignal:
    """Generate a noisy modulated signal.

    Args:
      kind: Modulation name; None uses `params.modulation`.
      params: Generation parameters (model or mapping).
      message: Optional external message in [-1, 1] at the engine's sample
        rate, indexed modulo its length. Ignored by digital modulations.
      seed: Optional seed for an independent generator used by this call.

    Returns:
      The generated signal.

    Raises:
      InvalidParameterError: If the kind or parameters are invalid.
    """
    params = resolve_parameters(params)
    kind = params.modulation if kind is None else ModulationKind.parse(kind)
    if kind != params.modulation:
      params = params.model_copy(update={"modulation": kind})
    validate_parameters(kind, params)

    num_samples = params.num_samples
    prepared = None
    if message is not None:
      if kind.is_symbol_based:
        logger.debug(f"{kind.value} ignores the external message")
      else:
        prepared = tile_message(message, num_samples)

    if seed is None:
      rng, noise = self._rng, self._noise
    else:
      rng = np.random.default_rng(seed)
      noise = NoiseSource(rng)

    time = np.arange(num_samples, dtype=np.float64) / params.sample_rate
    waveform = MODULATORS[kind](_Context(params, time, prepared, rng))
    real = noise.add_noise(waveform.real, params.snr_db)

    logger.debug(
      f"Generated {kind.value}: {num_samples} samples at {params.sample_rate}Hz, "
      f"snr={params.snr_db}dB"
    )
    return GeneratedSignal(
      modulation=kind,
      sample_rate=params.sample_rate,
      time=time,
      real=real,
      imag=waveform.imag,
      constellation=waveform.constellation,
    )
