#!/usr/bin/env python3
# -*- coding: utf-8 -*-
import numpy as np
from sklearn.preprocessing import normalize

class Mesh:
    """A triangle mesh with per-vertex colour and texture coordinates

    Attributes:
        vertices (ndarray): vertex coordinates, (numVertices, 3)
        tvi (ndarray): triangle vertex indices, (numTriangles, 3)
        colors (ndarray): vertex colours, (numVertices, 3), or (0, 3) if the model has no colour
        tci (ndarray): triangle colour indices, usually the same as ``tvi``
        texcoords (ndarray): texture coordinates, (numVertices, 2), or (0, 2) if the model has none
    """
    def __init__(self, vertices, tvi, colors = None, tci = None, texcoords = None):
        self.vertices = np.asarray(vertices, dtype = np.float64).reshape(-1, 3)
        self.tvi = np.asarray(tvi, dtype = np.int64).reshape(-1, 3)
        self.colors = np.zeros((0, 3)) if colors is None else np.asarray(colors, dtype = np.float64).reshape(-1, 3)
        self.tci = self.tvi.copy() if tci is None else np.asarray(tci, dtype = np.int64).reshape(-1, 3)
        self.texcoords = np.zeros((0, 2)) if texcoords is None else np.asarray(texcoords, dtype = np.float64).reshape(-1, 2)

    def __repr__(self):
        return 'Mesh(numVertices = %d, numTriangles = %d)' % (self.vertices.shape[0], self.tvi.shape[0])

def sampleToMesh(shape, color, tvi, tci, texcoords = None):
    """
    Build a Mesh from a shape instance and an optional colour instance, both in the interleaved (3 * numVertices,) layout of the PCA models.
    """
    vertices = np.asarray(shape).reshape(-1, 3)

    colors = None
    if color is not None and np.size(color):
        colors = np.asarray(color).reshape(-1, 3)

    if texcoords is not None and not np.size(texcoords):
        texcoords = None

    return Mesh(vertices, tvi, colors, tci, texcoords)

def calcFaceNormals(vertices, triangles):
    """
    Unit normal of each triangle for counter-clockwise vertex order, (numTriangles, 3). ``vertices`` is (numVertices, 3).
    """
    v0 = vertices[triangles[:, 0], :]
    v1 = vertices[triangles[:, 1], :]
    v2 = vertices[triangles[:, 2], :]

    faceNorm = np.cross(v1 - v0, v2 - v0)

    return normalize(faceNorm)
