import logging
import typing

import mido

logger = logging.getLogger(__name__)

def list_output_devices() -> typing.List[str]:
    """
    Return the names of the available MIDI output ports.

    Returns an empty list (and logs the reason) when no MIDI backend is
    usable, rather than raising.
    """
    try:
        return list(mido.get_output_names())
    except Exception as e:
        logger.error(f"Failed to list MIDI outputs: {e}")
        return []


def select_output_device(device_name: typing.Optional[str] = None) -> typing.Tuple[typing.Optional[str], typing.Optional[typing.Any]]:
    """
    Select and open a MIDI output device for playback.

    If `device_name` is provided, opens that device; when it is not present,
    logs a warning and falls back to the first available output so the same
    configuration works across machines.
    If `device_name` is None, the first available output is used.
    If no devices exist, logs an error and returns None.

    Unlike an interactive tool, this never prompts: playback is driven by a
    caller, not a console.

    Returns:
        A tuple of (device_name, midi_out_object) or (None, None) on failure.
    """
    outputs = list_output_devices()
    logger.info(f"Available MIDI outputs: {outputs}")

    if not outputs:
        logger.error("No MIDI output devices found.")
        return None, None

    target = outputs[0]

    if device_name is not None:
        if device_name in outputs:
            target = device_name
        else:
            logger.warning(
                f"MIDI output device '{device_name}' not found. "
                f"Available devices: {outputs}. Fallback to: {target}"
            )

    try:
        midi_out = mido.open_output(target)
    except Exception as e:
        logger.error(f"Failed to open MIDI output: {e}")
        return None, None

    logger.info(f"Opened MIDI output: {target}")
    return target, midi_out
