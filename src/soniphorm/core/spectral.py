"""
Spectral transform kernel.

Radix-2 Cooley-Tukey FFT and inverse FFT operating in place on separate
real/imaginary arrays, window generators, and power-of-two sizing helpers
shared by every spectral effect.
"""

import math

import numpy as np


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves going towards +inf."""
    return int(math.floor(value + 0.5))


def is_pow2(n: int) -> bool:
    """True when n is a positive power of two."""
    return n > 0 and (n & (n - 1)) == 0


def next_pow2(n: float) -> int:
    """
    Return the smallest power of two that is >= n.

    Args:
        n: Requested size. Values <= 1 map to 1.

    Returns:
        Power-of-two size.
    """
    if n <= 1:
        return 1
    p = 1
    while p < n:
        p <<= 1
    return p


def hann_window(size: int) -> np.ndarray:
    """
    Generate a symmetric Hann window.

        w[n] = 0.5 * (1 - cos(2 * pi * n / (N - 1)))
    """
    assert size >= 2, f"Window size must be >= 2, got {size}"
    n = np.arange(size, dtype=np.float64)
    return 0.5 * (1.0 - np.cos(2.0 * np.pi * n / (size - 1)))


def hamming_window(size: int) -> np.ndarray:
    """
    Generate a symmetric Hamming window.

        w[n] = 0.54 - 0.46 * cos(2 * pi * n / (N - 1))
    """
    assert size >= 2, f"Window size must be >= 2, got {size}"
    n = np.arange(size, dtype=np.float64)
    return 0.54 - 0.46 * np.cos(2.0 * np.pi * n / (size - 1))


def _bit_reversal_permutation(n: int) -> np.ndarray:
    bits = n.bit_length() - 1
    idx = np.arange(n)
    reversed_idx = np.zeros(n, dtype=np.int64)
    for b in range(bits):
        reversed_idx |= ((idx >> b) & 1) << (bits - 1 - b)
    return reversed_idx


def _twiddles(half_size: int, seed: complex) -> np.ndarray:
    """Twiddle factors 1, w, w^2, ... built by repeated multiplication."""
    factors = np.empty(half_size, dtype=np.complex128)
    factors[0] = 1.0
    if half_size > 1:
        factors[1:] = np.cumprod(np.full(half_size - 1, seed))
    return factors


def fft(real: np.ndarray, imag: np.ndarray) -> None:
    """
    In-place forward FFT.

    Args:
        real: Real parts. Length must be a power of two.
        imag: Imaginary parts, same length as real.

    Both arrays are overwritten with the DFT result.
    """
    n = len(real)
    assert is_pow2(n), f"FFT length must be a power of two, got {n}"
    assert len(imag) == n, "real and imag must have the same length"

    z = np.asarray(real, dtype=np.float64) + 1j * np.asarray(imag, dtype=np.float64)
    z = z[_bit_reversal_permutation(n)]

    size = 2
    while size <= n:
        half = size >> 1
        angle = -2.0 * math.pi / size
        twiddle = _twiddles(half, complex(math.cos(angle), math.sin(angle)))

        blocks = z.reshape(-1, size)
        even = blocks[:, :half]
        odd = blocks[:, half:] * twiddle
        z = np.concatenate((even + odd, even - odd), axis=1).ravel()

        size <<= 1

    real[:] = z.real
    imag[:] = z.imag


def ifft(real: np.ndarray, imag: np.ndarray) -> None:
    """
    In-place inverse FFT.

    Conjugate, forward FFT, conjugate again, scale by 1/N.
    """
    n = len(real)
    imag[:] = -np.asarray(imag)
    fft(real, imag)
    inv_n = 1.0 / n
    real[:] = np.asarray(real) * inv_n
    imag[:] = -np.asarray(imag) * inv_n
