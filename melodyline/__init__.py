"""
melodyline - type a melody as text, hear it, and move it in and out of MIDI.

A melody is written as a compact string of notes, pauses and comments::

    C4(1000) G# P(500) // chorus // E5(250)

- ``C``-``G`` / ``A``-``B`` (either case) is a note, ``#`` raises it a
  semitone, a digit ``0``-``8`` picks the octave (default 4), and
  ``(ms)`` sets the duration in milliseconds (default 1000).
- ``P`` is a pause, with the same optional ``(ms)``.
- ``// ... //`` is a comment and takes no time.

What the package does with it:

- **Parse with local errors.** ``parse()`` returns every token as an
  ``Event`` on a running timeline. A bad token carries its own error and
  verbatim text; it never stops the rest from parsing.
- **Transform.** ``transpose()`` and ``scale_durations()`` return new
  notation text, keeping defaults omitted.
- **Play.** ``Scheduler`` plays several monophonic voices at once through a
  MIDI output, with mute, solo, volume, speed and a cancellable session
  whose end is reported through a future.
- **MIDI files.** ``encode()`` writes one track per voice; ``decode()``
  reads any Standard MIDI File and splits polyphonic tracks into
  monophonic voices.

Minimal example:

    ```python
    import asyncio
    import melodyline

    async def main ():
        player = melodyline.Player()
        voice = player.voice("C4(500) E4(500) G4(1000)")
        await player.play([voice], speed=1.5)

    asyncio.run(main())
    ```

Package-level exports: ``parse``, ``transpose``, ``scale_durations``,
``encode``, ``decode``, ``Scheduler``, ``Player``, ``Voice``, ``InstrumentKind``.
"""

import melodyline.constants.instruments
import melodyline.midi_file
import melodyline.model
import melodyline.parser
import melodyline.player
import melodyline.scheduler
import melodyline.transforms


parse = melodyline.parser.parse
transpose = melodyline.transforms.transpose
scale_durations = melodyline.transforms.scale_durations
encode = melodyline.midi_file.encode
decode = melodyline.midi_file.decode
Scheduler = melodyline.scheduler.Scheduler
Player = melodyline.player.Player
Voice = melodyline.model.Voice
InstrumentKind = melodyline.constants.instruments.InstrumentKind
