"""Average and DCT perceptual hashes over 64 bits."""

from __future__ import annotations

import imagehash
import numpy as np
from PIL import Image

HASH_BITS = 64
HASH_HEX_LEN = HASH_BITS // 4

_AHASH_SIZE = 8
_PHASH_SIZE = 32
_PHASH_BLOCK = 8

# Rec. 709 weights for the average hash, Rec. 601 for the perceptual hash
_LUMA_709 = np.array([0.2126, 0.7152, 0.0722])
_LUMA_601 = np.array([0.299, 0.587, 0.114])


def _luminance(img: Image.Image, size: int, weights: np.ndarray) -> np.ndarray:
    small = img.convert("RGB").resize((size, size), Image.Resampling.LANCZOS)
    pixels = np.asarray(small, dtype=np.float64)
    return pixels @ weights


def _to_hex(bits: np.ndarray) -> str:
    return str(imagehash.ImageHash(bits.reshape(_AHASH_SIZE, _AHASH_SIZE)))


def dct_matrix(n: int) -> np.ndarray:
    """Orthogonal-style DCT-II basis with c(0) = 1/sqrt(2) and sqrt(2/N) per axis."""
    x = np.arange(n)
    u = x.reshape(-1, 1)
    basis = np.cos((2 * x + 1) * u * np.pi / (2 * n))
    scale = np.ones(n)
    scale[0] = 1 / np.sqrt(2)
    return basis * scale.reshape(-1, 1) * np.sqrt(2 / n)


def dct2(values: np.ndarray) -> np.ndarray:
    """2-D DCT-II of a square grid, normalised by 2/N overall."""
    m = dct_matrix(values.shape[0])
    return m @ values @ m.T


def average_hash(img: Image.Image) -> str:
    """8x8 mean-threshold hash as 16 hex characters."""
    lum = _luminance(img, _AHASH_SIZE, _LUMA_709).flatten()
    return _to_hex(lum >= lum.mean())


def perceptual_hash(img: Image.Image) -> str:
    """32x32 DCT hash: low-frequency 8x8 block thresholded at its non-DC median."""
    gray = _luminance(img, _PHASH_SIZE, _LUMA_601)
    coeffs = dct2(gray)[:_PHASH_BLOCK, :_PHASH_BLOCK].flatten()
    median = np.median(coeffs[1:])
    return _to_hex(coeffs > median)


def compute_hashes(img: Image.Image) -> tuple[str, str]:
    """Both hashes from one decoded bitmap: (average_hash, perceptual_hash)."""
    return average_hash(img), perceptual_hash(img)


def hamming_distance(hash_a: str | None, hash_b: str | None) -> int:
    """Differing bits between two hex hashes.

    A missing hash counts as fully distant (64). Hashes of different lengths
    are maximally distant over the longer one.
    """
    if not hash_a or not hash_b:
        return HASH_BITS
    if len(hash_a) != len(hash_b):
        return 4 * max(len(hash_a), len(hash_b))
    if len(hash_a) == HASH_HEX_LEN:
        return int(imagehash.hex_to_hash(hash_a) - imagehash.hex_to_hash(hash_b))
    return bin(int(hash_a, 16) ^ int(hash_b, 16)).count("1")
