"""
alerts/alert_system.py — Alarm Sound Output
pygame-backed AudioOutput: a single alarm tone that repeats while active.

activate() / deactivate() are idempotent, so the engine can call them every
frame. If the mixer cannot be initialised (no audio device) the alarm stays
silent and a warning is logged.
"""

import os
import threading
from typing import Optional

import numpy as np
import pygame
import pygame.sndarray

import config
from sentinel_engine.interfaces import AudioOutput
from core.logger import get_logger

log = get_logger(__name__)


class AlarmSound(AudioOutput):
    """
    Repeating alarm driven by the alarm decision engine.

    Usage:
        alarm = AlarmSound()
        alarm.start()               # initialises pygame mixer
        alarm.activate()            # safe to call every frame
        alarm.deactivate()
        alarm.stop()
    """

    def __init__(
        self,
        sound_path: str = config.ALARM_SOUND_PATH,
        repeat_interval: float = config.ALARM_REPEAT_INTERVAL,
    ):
        self._sound_path = sound_path
        self._repeat_interval = repeat_interval
        self._active: bool = False
        self._lock = threading.Lock()
        self._audio_thread: Optional[threading.Thread] = None
        self._stop_audio: threading.Event = threading.Event()
        self._mixer_ready: bool = False
        self._sound: Optional[pygame.mixer.Sound] = None

    # ──────────────────────────────────────────────────────────────────────────
    # Lifecycle
    # ──────────────────────────────────────────────────────────────────────────

    def start(self) -> None:
        """Initialise pygame mixer and pre-load / generate the alarm sound."""
        try:
            pygame.mixer.pre_init(
                frequency=44100, size=-16, channels=1, buffer=512
            )
            pygame.mixer.init()
        except pygame.error as exc:
            log.warning(f"pygame mixer init failed: {exc}. Audio disabled.")
            self._mixer_ready = False
            return

        self._mixer_ready = True
        self._sound = self._load_or_generate_sound(
            self._sound_path,
            freq=config.ALARM_TONE_FREQ,
            duration=config.ALARM_TONE_DURATION,
        )
        log.info("pygame mixer ready.")

    def stop(self) -> None:
        """Stop any playing audio and tear down pygame mixer."""
        self.deactivate()
        if self._mixer_ready:
            pygame.mixer.stop()
            pygame.mixer.quit()
            self._mixer_ready = False

    # ──────────────────────────────────────────────────────────────────────────
    # AudioOutput
    # ──────────────────────────────────────────────────────────────────────────

    def activate(self) -> None:
        with self._lock:
            if self._active:
                return
            self._active = True
            self._start_loop()

    def deactivate(self) -> None:
        with self._lock:
            if not self._active:
                return
            self._active = False
            self._stop_audio.set()
            thread = self._audio_thread
        if thread and thread.is_alive():
            thread.join(timeout=0.2)
        if self._mixer_ready:
            pygame.mixer.stop()

    # ──────────────────────────────────────────────────────────────────────────
    # Audio helpers
    # ──────────────────────────────────────────────────────────────────────────

    def _start_loop(self) -> None:
        """Start the repeat thread. Caller holds the lock."""
        if not self._mixer_ready or self._sound is None:
            return
        self._stop_audio = threading.Event()
        stop_event = self._stop_audio
        sound = self._sound
        interval = self._repeat_interval

        def _play_loop():
            while not stop_event.is_set():
                sound.play()
                # Wait for the interval or until stop is signalled
                stop_event.wait(timeout=interval)

        self._audio_thread = threading.Thread(
            target=_play_loop, daemon=True, name="sentinel-alarm-audio"
        )
        self._audio_thread.start()

    @staticmethod
    def _generate_tone(
        freq: float = 880.0,
        duration: float = 0.4,
        sample_rate: int = 44100,
        volume: float = 0.6,
    ) -> np.ndarray:
        """
        Generate a sine-wave beep as an int16 mono array with 20 ms fades.
        """
        t = np.linspace(0, duration, int(sample_rate * duration), endpoint=False)
        wave = np.sin(2 * np.pi * freq * t)

        fade_samples = int(sample_rate * 0.02)
        wave[:fade_samples] *= np.linspace(0, 1, fade_samples)
        wave[-fade_samples:] *= np.linspace(1, 0, fade_samples)

        return (wave * volume * 32767).astype(np.int16)

    def _load_or_generate_sound(
        self,
        path: str,
        freq: float,
        duration: float,
    ) -> Optional[pygame.mixer.Sound]:
        """Load a .wav file from disk, or synthesize a tone if not found."""
        if os.path.exists(path):
            try:
                snd = pygame.mixer.Sound(path)
                log.info(f"Loaded alarm sound: {path}")
                return snd
            except pygame.error as exc:
                log.warning(f"Could not load {path}: {exc}. Generating tone.")

        tone = self._generate_tone(freq=freq, duration=duration)
        # Mixer may have been opened in stereo regardless of pre_init
        _, _, channels = pygame.mixer.get_init()
        if channels == 2:
            tone = np.column_stack([tone, tone])
        snd = pygame.sndarray.make_sound(tone)
        log.info(f"Generated {freq:.0f} Hz alarm tone ({duration:.1f} s).")
        return snd

    # ──────────────────────────────────────────────────────────────────────────
    # Properties
    # ──────────────────────────────────────────────────────────────────────────

    @property
    def active(self) -> bool:
        return self._active
