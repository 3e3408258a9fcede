"""Configuration module for the modulation lab."""

from typing import Literal

from pydantic import BaseModel, Field, field_validator


class Config(BaseModel):
  """Configuration for a lab session.

  Attributes:
    fft_size: Number of points of the direct DFT window.
    spectrum_window: How the DFT window is taken from a longer signal.
    waterfall_lines: Number of spectra kept in the waterfall history.
    seed: Seed for the shared random generator (None for fresh entropy).
    log_level: Logging level used by entry points.
  """

  fft_size: int = Field(1024, description="Number of DFT points.", gt=0)
  spectrum_window: Literal["head", "decimate"] = Field(
    "head", description="Window selection for the spectrum estimate."
  )
  waterfall_lines: int = Field(
    20, description="Number of spectra kept in the waterfall.", gt=0
  )
  seed: int | None = Field(None, description="Random generator seed.")
  log_level: str = Field("INFO", description="Logging level.")

  model_config = {"frozen": True}

  @field_validator("fft_size")
  @classmethod
  def _check_even(cls, value: int) -> int:
    if value % 2:
      msg = f"fft_size must be even, got {value}"
      raise ValueError(msg)
    return value
