from __future__ import annotations

import hashlib
import random
from dataclasses import dataclass

try:  # optional dependency
    import numpy as _np  # type: ignore
except Exception:  # pragma: no cover - optional
    _np = None


SEED_BITS = 63
ENGINES = ("py_random", "numpy_pcg64")


@dataclass
class RandomSource:
    """Injectable random source used by the weighted picker."""

    engine: str

    def random(self) -> float:
        raise NotImplementedError


class PyRandomSource(RandomSource):
    def __init__(self, seed: int):
        super().__init__(engine="py_random")
        self._rng = random.Random(seed)

    def random(self) -> float:
        return self._rng.random()


class NumpyPCG64Source(RandomSource):  # pragma: no cover - covered when numpy present
    def __init__(self, seed: int):
        if _np is None:
            raise RuntimeError("numpy is not installed; install bingo-lines[pcg]")
        super().__init__(engine="numpy_pcg64")
        self._rng = _np.random.Generator(_np.random.PCG64(seed))

    def random(self) -> float:
        return float(self._rng.random())


def engine_available(engine: str) -> bool:
    """True when the named engine can be built in this environment."""
    if engine == "numpy_pcg64":
        return _np is not None
    return engine in ENGINES


def create_rng(engine: str, seed: int) -> RandomSource:
    engine = (engine or "py_random").strip().lower()
    if engine == "py_random":
        return PyRandomSource(seed)
    if engine == "numpy_pcg64":
        return NumpyPCG64Source(seed)
    raise ValueError(f"Unsupported RNG engine: {engine}")


def fresh_seed() -> int:
    """Draw a run seed from the OS entropy pool for unseeded runs."""
    return random.SystemRandom().getrandbits(SEED_BITS)


def derive_parallel_seed(base_seed: int, index: int, purpose: str) -> int:
    """Derive per-task seed from base seed, index, and purpose using sha256.

    Every batch attempt gets its own stream, so attempts can run on separate
    workers and still reproduce the sequential result.
    """
    s = f"{base_seed}|{index}|{purpose}".encode("utf-8")
    digest = hashlib.sha256(s).digest()
    return int.from_bytes(digest[:8], byteorder="big") & ((1 << SEED_BITS) - 1)
