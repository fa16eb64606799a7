"""Current transformation matrix helpers for text and image placement."""

from typing import Sequence, Tuple

import numpy as np

Matrix = Sequence[float]

# Corners of the unit square images are painted on
UNIT_SQUARE = np.array([(0.0, 0.0), (1.0, 0.0), (1.0, 1.0), (0.0, 1.0)])


def as_affine(ctm: Matrix) -> np.ndarray:
    """[a, b, c, d, e, f] as the 3x3 row-vector matrix PDF uses"""
    a, b, c, d, e, f = (float(v) for v in ctm)
    return np.array([[a, b, 0.0], [c, d, 0.0], [e, f, 1.0]])


def matrix_scale(ctm: Matrix) -> Tuple[float, float]:
    """Lengths of the transformed x and y unit vectors"""
    a, b, c, d = (float(v) for v in ctm[:4])
    return float(np.hypot(a, b)), float(np.hypot(c, d))


def transform_points(points: np.ndarray, ctm: Matrix) -> np.ndarray:
    """Map an (n, 2) array of user-space points through `ctm`"""
    homogeneous = np.hstack([points, np.ones((len(points), 1))])
    return (homogeneous @ as_affine(ctm))[:, :2]


def effective_font_size(font_size: float, matrix: Matrix) -> float:
    """Text-space font size scaled by the vertical scale of the text rendering matrix"""
    return font_size * matrix_scale(matrix)[1]


def image_placement(ctm: Matrix) -> Tuple[float, float, float, float]:
    """
    Position and size of an image drawn with `ctm`.

    The translation is the image's origin corner (bottom-left when unrotated)
    and the axis scales are its rendered size.

    Returns:
        Tuple of (x, y, width, height) in PDF Y-up coordinates
    """
    width, height = matrix_scale(ctm)
    return float(ctm[4]), float(ctm[5]), width, height


def calculate_image_bbox_pdf_coords(ctm: Matrix) -> Tuple[float, float, float, float]:
    """
    Axis-aligned box around an image drawn with `ctm`, rotation and skew included.

    Returns:
        Tuple of (x, y, width, height) in PDF Y-up coordinates
    """
    corners = transform_points(UNIT_SQUARE, ctm)
    (min_x, min_y), (max_x, max_y) = corners.min(axis=0), corners.max(axis=0)
    return float(min_x), float(min_y), float(max_x - min_x), float(max_y - min_y)
