"""
Shared fixtures: small synthetic morphable models and a projection helper that works independently of the camera code.
"""

import numpy as np
import pytest

from mmfit.models import PcaModel, MorphableModel, EdgeTopology
from mmfit.utils.transform import rotMat2angle


@pytest.fixture
def rng():
    return np.random.RandomState(0)


@pytest.fixture
def shape_model(rng):
    """20 random vertices, 4 orthonormal components with decreasing variance."""
    numVertices, numComponents = 20, 4
    mean = rng.uniform(-80, 80, 3 * numVertices)
    Q = np.linalg.qr(rng.randn(3 * numVertices, numComponents))[0]
    basis = np.ascontiguousarray(Q[:, :numComponents])
    eigenvalues = np.array([16.0, 9.0, 4.0, 1.0])
    triangles = np.array([[0, 1, 2], [2, 3, 4], [4, 5, 6]])
    return PcaModel(mean, basis, eigenvalues, triangles)


@pytest.fixture
def morphable_model(shape_model):
    return MorphableModel(shape_model)


@pytest.fixture
def project():
    """
    Return a function that projects (N, 3) points with a scaled orthographic pose into image pixels with y pointing down.
    """
    def _project(points, angles, s, tx, ty, height):
        R = rotMat2angle(np.asarray(angles, dtype = np.float64))
        xy = s * np.asarray(points).dot(R[:2, :].T) + np.array([tx, ty])
        xy[:, 1] = height - xy[:, 1]
        return np.ascontiguousarray(xy)
    return _project


# Vertices of a unit octahedron: +x, +y, -x, -y, +z, -z
OCTAHEDRON_VERTICES = np.array([
    [1, 0, 0], [0, 1, 0], [-1, 0, 0], [0, -1, 0], [0, 0, 1], [0, 0, -1]
], dtype = np.float64)

# Counter-clockwise seen from outside
OCTAHEDRON_TRIANGLES = np.array([
    [0, 1, 4], [1, 2, 4], [2, 3, 4], [3, 0, 4],
    [1, 0, 5], [2, 1, 5], [3, 2, 5], [0, 3, 5]
])

OCTAHEDRON_EDGES = {
    (0, 1): (0, 4), (1, 2): (1, 5), (2, 3): (2, 6), (3, 0): (3, 7),
    (0, 4): (0, 3), (1, 4): (0, 1), (2, 4): (1, 2), (3, 4): (2, 3),
    (0, 5): (4, 7), (1, 5): (4, 5), (2, 5): (5, 6), (3, 5): (6, 7),
}


@pytest.fixture
def octahedron_topology():
    vertices = list(OCTAHEDRON_EDGES.keys())
    faces = [OCTAHEDRON_EDGES[v] for v in vertices]
    return EdgeTopology(faces, vertices)


@pytest.fixture
def octahedron_model():
    """An octahedron of radius 50 with two shape components."""
    mean = (50 * OCTAHEDRON_VERTICES).flatten()
    basis = np.zeros((18, 2))
    basis[0, 0] = 1.0
    basis[7, 1] = 1.0
    return MorphableModel(PcaModel(mean, basis, np.array([4.0, 1.0]), OCTAHEDRON_TRIANGLES))
