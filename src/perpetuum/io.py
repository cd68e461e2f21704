import wave

import numpy as np


def normalize(audio: np.ndarray, headroom: float = 0.98) -> np.ndarray:
    """
    Protec earholes: scale so the loudest sample sits at ``headroom``.
    """
    peak = np.max(np.abs(audio)) if audio.size else 0.0
    if peak > 0.0:
        return audio / peak * headroom
    return audio


def save_wav(path: str, audio: np.ndarray, sr: int) -> None:
    """
    Export as 16-bit PCM WAV.
    """
    with wave.open(path, "w") as f:
        f.setnchannels(1)
        f.setsampwidth(2)
        f.setframerate(sr)
        pcm = (np.clip(audio, -1.0, 1.0) * 32767.0).astype(np.int16)
        f.writeframes(pcm.tobytes())
