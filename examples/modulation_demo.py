#!/usr/bin/env python3
"""Modulation lab demo script.

Generates one modulated signal, estimates its spectrum and prints the
analysis:
Message (test tone or WAV file) -> Modulation -> Noise -> Spectrum -> Analysis

The modulated signal sits in the audio band, so it can be written to a WAV
file or played back directly.
"""

import logging
import sys
from pathlib import Path
from typing import Annotated

import numpy as np
import scipy.io.wavfile
import sounddevice as sd
import typer

from rf_modlab.config import Config
from rf_modlab.modem import (
  InvalidParameterError,
  ModulationKind,
  SignalLab,
  SignalParameters,
  prepare_message,
)
from rf_modlab.setup_logging import setup_logging

logger = logging.getLogger(__name__)


def load_audio(file_path: Path) -> tuple[int, np.ndarray]:
  """Load audio file and convert to float [-1, 1]."""
  try:
    sample_rate, data = scipy.io.wavfile.read(file_path)
  except (ValueError, OSError):
    logger.exception(f"Error reading audio file {file_path}")
    sys.exit(1)

  if data.dtype == np.int16:
    data = data.astype(np.float32) / 32768.0
  elif data.dtype == np.int32:
    data = data.astype(np.float32) / 2147483648.0
  elif data.dtype == np.uint8:
    data = (data.astype(np.float32) - 128.0) / 128.0
  elif data.dtype != np.float32:
    logger.error(f"Unsupported audio format: {data.dtype}")
    sys.exit(1)

  return sample_rate, data


def save_audio(file_path: Path, sample_rate: int, data: np.ndarray) -> None:
  """Save a signal as int16 wav, normalized to its peak."""
  peak = float(np.max(np.abs(data))) or 1.0
  data_int16 = (data / peak * 32767).astype(np.int16)
  scipy.io.wavfile.write(file_path, sample_rate, data_int16)
  logger.info(f"Saved output to {file_path}")


def play_audio(sample_rate: int, data: np.ndarray) -> None:
  """Play a signal using sounddevice."""
  peak = float(np.max(np.abs(data))) or 1.0
  logger.info("Playing signal... (press Ctrl+C to stop)")
  try:
    sd.play(data / peak, sample_rate, blocking=True)
    logger.info("Playback complete!")
  except KeyboardInterrupt:
    sd.stop()
    logger.info("Playback stopped.")


def main(
  modulation: Annotated[
    ModulationKind,
    typer.Argument(help="Modulation scheme.", case_sensitive=False),
  ] = ModulationKind.AM,
  carrier: Annotated[
    float, typer.Option("--carrier", "-c", help="Carrier frequency in Hz.")
  ] = 1000.0,
  symbol_rate: Annotated[
    float, typer.Option("--symbol-rate", "-r", help="Symbol rate in Hz.")
  ] = 100.0,
  message_freq: Annotated[
    float, typer.Option("--message-freq", help="Test tone frequency in Hz.")
  ] = 100.0,
  snr: Annotated[float, typer.Option("--snr", "-s", help="SNR in dB.")] = 20.0,
  index: Annotated[
    float, typer.Option("--index", "-k", help="Modulation index (0-1).")
  ] = 0.5,
  deviation: Annotated[
    float, typer.Option("--deviation", "-d", help="Frequency deviation in Hz.")
  ] = 100.0,
  sideband: Annotated[
    str, typer.Option("--sideband", help="Sideband for ssb (USB or LSB).")
  ] = "USB",
  duration: Annotated[
    float, typer.Option("--duration", help="Duration in seconds.")
  ] = 1.0,
  message: Annotated[
    Path | None,
    typer.Option(
      "--message", "-m", help="WAV file used as message.", exists=True, readable=True
    ),
  ] = None,
  output: Annotated[
    Path | None,
    typer.Option("--output", "-o", help="Write the modulated signal to a WAV file."),
  ] = None,
  play: Annotated[
    bool, typer.Option("--play", help="Play the modulated signal.")
  ] = False,
  seed: Annotated[int | None, typer.Option("--seed", help="Random seed.")] = None,
  log_level: Annotated[str, typer.Option("--log-level", help="Log level.")] = "INFO",
) -> None:
  """Generate, analyze and optionally play a modulated test signal."""
  config = Config(seed=seed, log_level=log_level)
  setup_logging(level=config.log_level)

  try:
    params = SignalParameters(
      modulation=modulation,
      carrier_freq=carrier,
      symbol_rate=symbol_rate,
      message_freq=message_freq,
      snr_db=snr,
      modulation_index=index,
      frequency_deviation=deviation,
      duration=duration,
      sideband=sideband.upper(),
    )
  except ValueError:
    logger.exception("Invalid signal parameters")
    sys.exit(1)

  samples = None
  if message is not None:
    logger.info(f"Loading {message}...")
    audio_rate, audio = load_audio(message)
    samples = prepare_message(audio, audio_rate, params.sample_rate)
    logger.info(f"Loaded {len(samples) / params.sample_rate:.2f}s message")

  lab = SignalLab(config)
  try:
    result = lab.process(None, params, samples)
  except InvalidParameterError:
    logger.exception("Generation failed")
    sys.exit(1)

  analysis = result.analysis
  logger.info(f"Signal type: {analysis.modulation_name}")
  logger.info(f"Bandwidth:   {analysis.bandwidth_hz:.1f} Hz")
  logger.info(f"SNR:         {analysis.snr_db:.1f} dB")
  if result.signal.constellation is not None:
    logger.info(f"Symbols:     {len(result.signal.constellation)}")
  typer.echo(analysis.insights)

  if output is not None:
    save_audio(output, result.signal.sample_rate, result.signal.real)
  if play:
    play_audio(result.signal.sample_rate, result.signal.real)


if __name__ == "__main__":
  typer.run(main)
