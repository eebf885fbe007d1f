"""Load settings from a YAML file.

Every key is optional; missing keys keep their defaults::

    midi:
      output_device: "FluidSynth virtual port"
      bpm: 125
      ticks_per_beat: 480

    playback:
      speed: 1.0
      instrument: piano
      volume: 1.0

    logging:
      level: INFO
"""

import dataclasses
import logging
import os
import typing

import yaml

import melodyline.constants
import melodyline.constants.instruments


logger = logging.getLogger(__name__)


DEFAULT_CONFIG_PATH = "melodyline.yaml"


class ConfigError (Exception):
	pass


@dataclasses.dataclass
class Settings:

	"""
	Application settings.

	Attributes:
		output_device: MIDI output port name. None uses the first available.
		bpm: Tempo written to exported MIDI files.
		ticks_per_beat: Time division written to exported MIDI files.
		speed: Default playback speed multiplier.
		instrument: Instrument for voices created without one.
		volume: Volume for voices created without one.
		log_level: Level name passed to `configure_logging`.
	"""

	output_device: typing.Optional[str] = None
	bpm: float = melodyline.constants.DEFAULT_BPM
	ticks_per_beat: int = melodyline.constants.DEFAULT_TICKS_PER_BEAT
	speed: float = 1.0
	instrument: melodyline.constants.instruments.InstrumentKind = melodyline.constants.instruments.DEFAULT_INSTRUMENT
	volume: float = 1.0
	log_level: str = "INFO"

	def __post_init__ (self) -> None:

		if self.bpm <= 0:
			raise ConfigError("midi.bpm must be positive")

		if self.ticks_per_beat <= 0:
			raise ConfigError("midi.ticks_per_beat must be positive")

		if self.speed <= 0:
			raise ConfigError("playback.speed must be positive")

		if not 0.0 <= self.volume <= 1.0:
			raise ConfigError("playback.volume must be between 0 and 1")

		if not isinstance(logging.getLevelName(self.log_level.upper()), int):
			raise ConfigError(f"Unknown logging.level: {self.log_level!r}")


def load_config (config_path: str = DEFAULT_CONFIG_PATH) -> Settings:

	"""
	Load settings from a YAML file.

	A missing file is not an error: a warning is logged and the defaults
	are returned.

	Raises:
		ConfigError: If the file cannot be parsed or holds invalid values.
	"""

	if not os.path.exists(config_path):
		logger.warning(f"Config file {config_path} not found. Using defaults.")
		return Settings()

	try:
		with open(config_path, 'r') as f:
			data = yaml.safe_load(f)
	except yaml.YAMLError as exc:
		raise ConfigError(f"Could not parse {config_path}: {exc}") from exc

	return settings_from_dict(data or {})


def settings_from_dict (data: typing.Dict[str, typing.Any]) -> Settings:

	"""
	Build settings from an already-loaded mapping with the YAML layout.
	"""

	if not isinstance(data, dict):
		raise ConfigError("Config root must be a mapping")

	midi = _section(data, 'midi')
	playback = _section(data, 'playback')
	logging_section = _section(data, 'logging')

	defaults = Settings()

	try:
		instrument_name = playback.get('instrument')
		instrument = (
			melodyline.constants.instruments.InstrumentKind.from_name(str(instrument_name))
			if instrument_name is not None
			else defaults.instrument
		)

		return Settings(
			output_device = midi.get('output_device', defaults.output_device),
			bpm = float(midi.get('bpm', defaults.bpm)),
			ticks_per_beat = int(midi.get('ticks_per_beat', defaults.ticks_per_beat)),
			speed = float(playback.get('speed', defaults.speed)),
			instrument = instrument,
			volume = float(playback.get('volume', defaults.volume)),
			log_level = str(logging_section.get('level', defaults.log_level))
		)

	except (TypeError, ValueError) as exc:
		raise ConfigError(f"Invalid config value: {exc}") from exc


def configure_logging (settings: Settings) -> None:

	"""Apply the configured level to the root logger (for applications, not libraries)."""

	logging.basicConfig(level=settings.log_level.upper())


def _section (data: typing.Dict[str, typing.Any], name: str) -> typing.Dict[str, typing.Any]:

	section = data.get(name) or {}

	if not isinstance(section, dict):
		raise ConfigError(f"Config section {name!r} must be a mapping")

	return section
