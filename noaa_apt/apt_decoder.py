"""APT decoder manager.

Provides the AptDecoder class that runs the whole pipeline on files:
WAV file -> resample -> demodulate -> sync -> telemetry -> PNG output.

Decoding is synchronous, ``start_decode()`` runs it on a worker thread and
reports progress through the callback.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable

from .config import OUTPUT_DIR, STEPS_DIR, Profile, get_profile
from .constants import FINAL_RATE
from .context import Context, WavStepWriter
from .frequency import Rate
from .image import PERCENT, Contrast, save_png
from .logging import get_logger
from .pipeline import decode, process, resample_signal
from .telemetry import Channel
from .wav import copy_timestamp, load_wav, write_wav

logger = get_logger('noaa_apt.decoder')


# ---------------------------------------------------------------------------
# Dataclasses
# ---------------------------------------------------------------------------

@dataclass
class AptImageFile:
    """Decoded APT image saved to disk."""
    filename: str
    path: Path
    timestamp: datetime
    channel_a: str = 'Unknown'
    channel_b: str = 'Unknown'
    size_bytes: int = 0
    url_prefix: str = '/apt'
    telemetry: dict | None = None

    def to_dict(self) -> dict:
        result = {
            'filename': self.filename,
            'path': str(self.path),
            'timestamp': self.timestamp.isoformat(),
            'channel_a': self.channel_a,
            'channel_b': self.channel_b,
            'size_bytes': self.size_bytes,
            'url': f'{self.url_prefix}/images/{self.filename}',
        }
        if self.telemetry:
            result['telemetry'] = self.telemetry
        return result


@dataclass
class DecodeProgress:
    """APT decode progress update."""
    status: str  # 'decoding', 'complete', 'error'
    progress_percent: int = 0
    message: str | None = None
    image: AptImageFile | None = None

    def to_dict(self) -> dict:
        result: dict = {
            'type': 'apt_progress',
            'status': self.status,
            'progress': self.progress_percent,
        }
        if self.message:
            result['message'] = self.message
        if self.image:
            result['image'] = self.image.to_dict()
        return result


@dataclass
class DecodeOptions:
    """Options for a decode."""
    profile: Profile = field(default_factory=get_profile)
    contrast: Contrast = PERCENT
    rotate: bool = False
    sync: bool = True
    export_steps: bool = False
    export_resample_filtered: bool = False


# ---------------------------------------------------------------------------
# AptDecoder
# ---------------------------------------------------------------------------

class AptDecoder:
    """Decodes APT recordings into PNG images."""

    def __init__(self, output_dir: str | Path | None = None,
                 steps_dir: str | Path | None = None,
                 url_prefix: str = '/apt'):
        self._lock = threading.Lock()
        self._callback: Callable[[dict], None] | None = None
        self._output_dir = Path(output_dir) if output_dir else Path(OUTPUT_DIR)
        self._steps_dir = Path(steps_dir) if steps_dir else Path(STEPS_DIR)
        self._url_prefix = url_prefix
        self._images: list[AptImageFile] = []
        self._decode_thread: threading.Thread | None = None
        self._running = False
        self._last_progress: DecodeProgress | None = None

        # Ensure output directory exists
        self._output_dir.mkdir(parents=True, exist_ok=True)

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def output_dir(self) -> Path:
        return self._output_dir

    @property
    def last_progress(self) -> DecodeProgress | None:
        return self._last_progress

    def set_callback(self, callback: Callable[[dict], None]) -> None:
        """Set callback for decode progress updates."""
        self._callback = callback

    def _context_progress(self, fraction: float, description: str) -> None:
        logger.info(description)
        self._emit_progress(DecodeProgress(
            status='decoding',
            progress_percent=int(fraction * 100),
            message=description,
        ))

    def decode_file(self, audio_path: str | Path,
                    options: DecodeOptions | None = None) -> AptImageFile:
        """Decode an APT image from a WAV file.

        Args:
            audio_path: Path to WAV audio file.
            options: Decode options, defaults if ``None``.

        Returns:
            The saved image.
        """
        options = options or DecodeOptions()
        audio_path = Path(audio_path)

        signal, input_rate = load_wav(audio_path)

        logger.info(
            f"Decoding '{audio_path.name}' with profile '{options.profile.name}', "
            f"{len(signal)} samples at {input_rate}")

        context = Context.decode(
            Rate(options.profile.work_rate),
            Rate(FINAL_RATE),
            progress=self._context_progress,
            export_steps=options.export_steps,
            export_resample_filtered=options.export_resample_filtered,
            sink=WavStepWriter(self._steps_dir / audio_path.stem),
        )

        decoded = decode(context, options.profile, signal, input_rate, sync=options.sync)
        apt_image = process(context, decoded, options.contrast, rotate=options.rotate)

        timestamp = datetime.now(timezone.utc)
        filename = f"apt_{timestamp.strftime('%Y%m%d_%H%M%S')}_{audio_path.stem}.png"
        filepath = save_png(apt_image.raster, self._output_dir / filename)

        telemetry = apt_image.telemetry
        image_file = AptImageFile(
            filename=filename,
            path=filepath,
            timestamp=timestamp,
            channel_a=telemetry.get_channel_name(Channel.A) if telemetry else 'Unknown',
            channel_b=telemetry.get_channel_name(Channel.B) if telemetry else 'Unknown',
            size_bytes=filepath.stat().st_size,
            url_prefix=self._url_prefix,
            telemetry=telemetry.to_dict() if telemetry else None,
        )
        with self._lock:
            self._images.append(image_file)

        logger.info(f"APT image saved: {filename} ({image_file.size_bytes} bytes)")
        return image_file

    def resample_file(self, input_path: str | Path, output_path: str | Path,
                      output_rate: int, profile: Profile | None = None,
                      export_steps: bool = False) -> Path:
        """Resample a WAV file into another WAV file.

        The modification time of the input file is copied.

        Args:
            input_path: WAV file to read.
            output_path: WAV file to write, 16 bit.
            output_rate: Sample rate wanted (Hz).
            profile: Filter parameters, default profile if ``None``.
            export_steps: Whether to export intermediate signals.

        Returns:
            Path of the written file.
        """
        profile = profile or get_profile()
        input_path = Path(input_path)
        output_path = Path(output_path)

        context = Context.resample(
            progress=self._context_progress,
            export_steps=export_steps,
            sink=WavStepWriter(self._steps_dir / input_path.stem),
        )

        context.status(0., "Reading WAV file")
        signal, input_rate = load_wav(input_path)

        resampled = resample_signal(context, profile, signal, input_rate, Rate(output_rate))

        context.status(0.8, f"Writing WAV to '{output_path}'")
        write_wav(output_path, resampled, Rate(output_rate), bits_per_sample=16)
        copy_timestamp(input_path, output_path)

        context.status(1., "Finished")
        return output_path

    def start_decode(self, audio_path: str | Path,
                     options: DecodeOptions | None = None,
                     delete_audio: bool = False) -> bool:
        """Decode a file on a worker thread.

        Args:
            audio_path: WAV file to decode.
            options: Decode options, defaults when ``None``.
            delete_audio: Remove the WAV file once the worker is done with it,
                whatever the outcome.

        Returns:
            False if a decode is already running.
        """
        with self._lock:
            if self._running:
                return False
            self._running = True

        self._decode_thread = threading.Thread(
            target=self._decode_worker,
            args=(Path(audio_path), options, delete_audio),
            daemon=True,
        )
        self._decode_thread.start()
        return True

    def wait(self, timeout: float | None = None) -> None:
        """Wait for the worker thread to finish."""
        if self._decode_thread is not None:
            self._decode_thread.join(timeout)

    def _decode_worker(self, audio_path: Path, options: DecodeOptions | None,
                       delete_audio: bool) -> None:
        try:
            image_file = self.decode_file(audio_path, options)
            self._emit_progress(DecodeProgress(
                status='complete',
                progress_percent=100,
                message='Image decoded',
                image=image_file,
            ))
        except Exception as e:
            logger.error(f"Error decoding '{audio_path}': {e}")
            self._emit_progress(DecodeProgress(
                status='error',
                message=str(e),
            ))
        finally:
            if delete_audio:
                audio_path.unlink(missing_ok=True)
            self._running = False

    def get_images(self) -> list[AptImageFile]:
        """Get list of decoded images."""
        self._scan_images()
        return list(self._images)

    def delete_image(self, filename: str) -> bool:
        """Delete a single decoded image by filename."""
        filepath = self._output_dir / filename
        if not filepath.exists():
            return False
        filepath.unlink()
        with self._lock:
            self._images = [img for img in self._images if img.filename != filename]
        logger.info(f"Deleted APT image: {filename}")
        return True

    def delete_all_images(self) -> int:
        """Delete all decoded images. Returns count deleted."""
        count = 0
        for filepath in self._output_dir.glob('*.png'):
            filepath.unlink()
            count += 1
        with self._lock:
            self._images.clear()
        logger.info(f"Deleted all APT images ({count} files)")
        return count

    def _scan_images(self) -> None:
        """Scan output directory for images decoded by previous runs."""
        with self._lock:
            self._images = [img for img in self._images if img.path.exists()]
            known_filenames = {img.filename for img in self._images}

            for filepath in sorted(self._output_dir.glob('*.png')):
                if filepath.name in known_filenames:
                    continue
                stat = filepath.stat()
                self._images.append(AptImageFile(
                    filename=filepath.name,
                    path=filepath,
                    timestamp=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
                    size_bytes=stat.st_size,
                    url_prefix=self._url_prefix,
                ))

    def _emit_progress(self, progress: DecodeProgress) -> None:
        """Emit progress update to callback."""
        self._last_progress = progress
        if self._callback:
            try:
                self._callback(progress.to_dict())
            except Exception as e:
                logger.error(f"Error in progress callback: {e}")


# ---------------------------------------------------------------------------
# Module-level singleton
# ---------------------------------------------------------------------------

_decoder: AptDecoder | None = None


def get_apt_decoder() -> AptDecoder:
    """Get or create the global APT decoder instance."""
    global _decoder
    if _decoder is None:
        _decoder = AptDecoder()
    return _decoder
