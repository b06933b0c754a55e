r"""
gailpy.sampling
===============

Drawing samples from user samplers.

A *sampler* is any callable ``sampler(n)`` returning exactly ``n`` i.i.d.
real values. This module validates that contract, evaluates means over very
large sample counts in bounded-size chunks, and offers
:class:`SeededSampler` to build reproducible samplers from a NumPy
generator.

Chunking
--------

:func:`eval_mean` never asks the sampler for more than ``npcmax`` values at
once, so peak memory stays bounded regardless of ``n``. Blocks are produced
by :func:`make_blocks`.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional

import numpy as np

from .errors import ContractError

logger = logging.getLogger(__name__)

Sampler = Callable[[int], Any]

#: Largest batch requested from a sampler in one call.
DEFAULT_NPCMAX = 1_000_000


def make_blocks(n, block_size=10_000):
    r"""
    Partition an integer range ``[0, n)`` into half-open blocks ``(i, j)``.

    Parameters
    ----------
    n : int
        Total number of items.
    block_size : int, default ``10_000``
        Maximum block length.

    Returns
    -------
    list of tuple[int, int]
        List of ``(i, j)`` index pairs covering ``[0, n)``.

    Examples
    --------
    >>> make_blocks(5, block_size=2)
    [(0, 2), (2, 4), (4, 5)]
    """
    if block_size <= 0:
        raise ValueError("block_size must be positive")
    blocks = []
    i = 0
    while i < n:
        j = min(i + block_size, n)
        blocks.append((i, j))
        i = j
    return blocks


def draw(sampler: Sampler, n: int) -> np.ndarray:
    r"""
    Request ``n`` samples and enforce the sampler contract.

    Parameters
    ----------
    sampler : callable
        ``sampler(n)`` returning ``n`` real values.
    n : int
        Number of samples.

    Returns
    -------
    ndarray of float
        One-dimensional array of length ``n``.

    Raises
    ------
    ContractError
        If the output is not a vector of ``n`` real numbers. Column and row
        vectors (shape ``(n, 1)`` or ``(1, n)``) are accepted and flattened.
    """
    try:
        arr = np.asarray(sampler(int(n)), dtype=float)
    except (TypeError, ValueError) as e:
        raise ContractError(f"sampler output for n={n} is not real-valued: {e}") from e
    if arr.ndim > 1 and sorted(arr.shape)[:-1] == [1] * (arr.ndim - 1):
        arr = arr.reshape(-1)
    if arr.ndim != 1 or arr.size != n:
        raise ContractError(
            f"sampler must return a vector of length n={n}, got an array of shape {arr.shape}"
        )
    return arr


def check_sampler(sampler: Sampler, n_probe: int = 5) -> int:
    r"""
    Probe a sampler once and verify the output shape.

    Parameters
    ----------
    sampler : callable
        Candidate sampler.
    n_probe : int, default ``5``
        Probe size.

    Returns
    -------
    int
        Number of samples drawn by the probe.

    Raises
    ------
    ContractError
        If ``sampler`` is not callable or violates the contract.
    """
    if not callable(sampler):
        raise ContractError(f"sampler must be callable, got {type(sampler).__name__}")
    draw(sampler, n_probe)
    return n_probe


def eval_mean(sampler: Sampler, n: int, npcmax: int = DEFAULT_NPCMAX) -> float:
    r"""
    Sample mean of ``n`` draws computed in chunks of at most ``npcmax``.

    Parameters
    ----------
    sampler : callable
        ``sampler(k)`` returning ``k`` real values.
    n : int
        Total number of samples.
    npcmax : int, default ``1_000_000``
        Chunk ceiling.

    Returns
    -------
    float
        :math:`\frac{1}{n}\sum_{i=1}^n Y_i`.

    Raises
    ------
    ValueError
        If ``n`` or ``npcmax`` is not positive.
    ContractError
        If any chunk has the wrong length.

    Notes
    -----
    Chunks are requested in order, so for a sampler backed by a single
    random stream the result equals the mean of one unchunked draw of the
    same ``n`` values.
    """
    n = int(n)
    if n <= 0:
        raise ValueError("n must be positive")
    if npcmax <= 0:
        raise ValueError("npcmax must be positive")
    blocks = make_blocks(n, int(npcmax))
    if len(blocks) > 1:
        logger.debug(f"Evaluating mean of {n} samples in {len(blocks)} chunks")
    total = 0.0
    for i, j in blocks:
        total += float(np.sum(draw(sampler, j - i)))
    return total / n


class SeededSampler:
    r"""
    Reproducible sampler built by composing a draw function with a NumPy RNG.

    Parameters
    ----------
    draw_fn : callable
        ``draw_fn(rng, n)`` returning ``n`` samples using the
        :class:`numpy.random.Generator` ``rng``.
    seed : int, optional
        Seed for :class:`numpy.random.SeedSequence`. ``None`` chooses entropy
        from the OS.

    Examples
    --------
    >>> uniform = SeededSampler(lambda rng, n: rng.random(n), seed=42)
    >>> len(uniform(3))
    3
    """

    def __init__(self, draw_fn: Callable[[np.random.Generator, int], Any], seed: Optional[int] = None):
        self.draw_fn = draw_fn
        self.seed_seq: Optional[np.random.SeedSequence] = None
        self.rng = np.random.default_rng()
        self.set_seed(seed)

    def set_seed(self, seed: Optional[int]) -> None:
        r"""
        Restart the random stream.

        Parameters
        ----------
        seed : int or None
            Seed for :class:`numpy.random.SeedSequence`.
        """
        self.seed_seq = np.random.SeedSequence(seed)
        self.rng = np.random.default_rng(self.seed_seq)

    def __call__(self, n: int):
        return self.draw_fn(self.rng, int(n))

    def __repr__(self) -> str:
        entropy = self.seed_seq.entropy if self.seed_seq is not None else None
        return f"{type(self).__name__}({getattr(self.draw_fn, '__name__', 'draw_fn')}, entropy={entropy})"


__all__ = [
    "DEFAULT_NPCMAX",
    "Sampler",
    "make_blocks",
    "draw",
    "check_sampler",
    "eval_mean",
    "SeededSampler",
]
