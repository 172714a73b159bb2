#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Correspondences for landmarks on the outline of the face. Which model vertex lies on the silhouette depends on the head pose, so these are recomputed from the current pose in every fitting iteration.
"""

import logging
import numpy as np
from scipy.spatial.distance import cdist
from sklearn.neighbors import NearestNeighbors
from ..errors import InvalidInput
from ..utils.io import loadContourLandmarks, loadModelContour
from ..utils.mesh import calcFaceNormals
from ..utils.transform import rotMat2angle
from .camera import ScaledOrthoProjectionParameters, RenderingParameters, get3x4AffineCameraMatrix, projectPoints

logger = logging.getLogger(__name__)

class ContourLandmarks:
    """The ids of the detected landmarks on the right and left face contour

    Args:
        rightContour (list): landmark ids on the right contour
        leftContour (list): landmark ids on the left contour
    """
    def __init__(self, rightContour = (), leftContour = ()):
        self.rightContour = tuple(str(name) for name in rightContour)
        self.leftContour = tuple(str(name) for name in leftContour)

    @classmethod
    def load(cls, fName):
        """
        Load the contour landmarks from the 'contour_landmarks' table of a YAML landmark mapping file.
        """
        return cls(*loadContourLandmarks(fName))

    def __contains__(self, name):
        name = str(name)
        return name in self.rightContour or name in self.leftContour

    def __repr__(self):
        return 'ContourLandmarks(right = %d, left = %d)' % (len(self.rightContour), len(self.leftContour))

class ModelContour:
    """The candidate model vertices for the right and left face contour, ordered along the contour

    Args:
        rightContour (list): vertex indices of the right contour candidates
        leftContour (list): vertex indices of the left contour candidates
    """
    def __init__(self, rightContour = (), leftContour = ()):
        self.rightContour = tuple(int(v) for v in rightContour)
        self.leftContour = tuple(int(v) for v in leftContour)

    @classmethod
    def load(cls, fName):
        """
        Load a ModelContour from a JSON file with a "model_contour" entry holding "right_contour" and "left_contour" lists.
        """
        return cls(*loadModelContour(fName))

    def __repr__(self):
        return 'ModelContour(right = %d, left = %d)' % (len(self.rightContour), len(self.leftContour))

def get_contour_correspondences(landmarks, contourLandmarks, modelContour, meshVertices, renderingParameters):
    """
    For each landmark in ``landmarks`` (a LandmarkCollection) whose id is a right or left contour landmark, project the candidate vertices of the same side of ``modelContour`` with the current pose and pick the one closest to the landmark in the image. Ties go to the candidate that comes first along the contour.

    Returns the image points (numCorrespondences, 2), the selected vertex indices (numCorrespondences,), and the landmark ids.
    """
    meshVertices = np.asarray(meshVertices).reshape(-1, 3)
    affine = get3x4AffineCameraMatrix(renderingParameters)

    imagePoints, vertexIndices, landmarkIds = [], [], []
    for side, names, candidates in (('right', contourLandmarks.rightContour, modelContour.rightContour), ('left', contourLandmarks.leftContour, modelContour.leftContour)):
        names = [name for name in names if name in landmarks]
        if not names:
            continue
        if not candidates:
            logger.debug('No %s model contour to match landmarks %s against', side, names)
            continue

        candidates = np.array(candidates)
        if candidates.min() < 0 or candidates.max() >= meshVertices.shape[0]:
            raise InvalidInput('The %s model contour has vertex indices outside the mesh of %d vertices.' % (side, meshVertices.shape[0]))

        projected = projectPoints(meshVertices[candidates], affine)
        points = np.array([landmarks.get(name) for name in names])

        closest = np.argmin(cdist(points, projected), axis = 1)

        imagePoints.append(points)
        vertexIndices.append(candidates[closest])
        landmarkIds.extend(names)

    if not landmarkIds:
        return np.zeros((0, 2)), np.zeros(0, dtype = np.int64), []

    return np.concatenate(imagePoints), np.concatenate(vertexIndices), landmarkIds

def frontalRenderingParameters(imagePoints, modelPoints, screenWidth, screenHeight):
    """
    A frontal pose (no pitch or yaw) whose roll, scale, and translation best map the x, y of the model points onto the image points in the least squares sense. Used to select contour vertices before any pose has been estimated. Image points have y pointing down, like the landmarks.

    Returns None if fewer than 2 distinct model points are given, since they do not determine the pose.
    """
    x = np.array(imagePoints, dtype = np.float64).reshape(-1, 2)
    X = np.asarray(modelPoints, dtype = np.float64).reshape(-1, 3)[:, :2]
    if x.shape[0] != X.shape[0]:
        raise InvalidInput('Got %d image points but %d model points.' % (x.shape[0], X.shape[0]))
    if x.shape[0] < 2:
        return None
    x[:, 1] = screenHeight - x[:, 1]

    # 2D similarity as a complex scale-rotation a = s * exp(i * roll)
    z = x[:, 0] + 1j * x[:, 1]
    Z = X[:, 0] + 1j * X[:, 1]
    zc = z - z.mean()
    Zc = Z - Z.mean()
    denom = np.sum(np.abs(Zc) ** 2)
    if denom == 0:
        return None

    a = np.sum(np.conj(Zc) * zc) / denom
    s = np.abs(a)
    if s == 0:
        return None
    t = z.mean() - a * Z.mean()

    R = rotMat2angle(np.array([0., 0., np.angle(a)]))
    return RenderingParameters(ScaledOrthoProjectionParameters(R, s, t.real, t.imag), screenWidth, screenHeight)

def turnedAwaySide(meshVertices, modelContour, R):
    """
    Return 'right' or 'left', whichever model contour lies further from the viewer (on average, after rotating with R), or None if either contour is empty.
    """
    if not modelContour.rightContour or not modelContour.leftContour:
        return None
    meshVertices = np.asarray(meshVertices).reshape(-1, 3)
    zRight = np.dot(meshVertices[list(modelContour.rightContour)], R[2, :]).mean()
    zLeft = np.dot(meshVertices[list(modelContour.leftContour)], R[2, :]).mean()
    return 'right' if zRight < zLeft else 'left'

def _rayHitsMesh(origin, v0, e1, e2, eps = 1e-9):
    """
    Whether the ray from ``origin`` along +z hits any of the triangles v0 + u*e1 + v*e2, Moller-Trumbore over all triangles at once.
    """
    direction = np.array([0., 0., 1.])
    p = np.cross(direction, e2)
    det = np.einsum('ij,ij->i', e1, p)
    valid = np.abs(det) > eps
    invDet = np.where(valid, 1 / np.where(valid, det, 1), 0)

    tvec = origin - v0
    u = np.einsum('ij,ij->i', tvec, p) * invDet
    q = np.cross(tvec, e1)
    v = q.dot(direction) * invDet
    t = np.einsum('ij,ij->i', e2, q) * invDet

    return np.any(valid & (u >= 0) & (v >= 0) & (u + v <= 1) & (t > eps))

def occludingBoundaryVertices(mesh, edgeTopology, R, performSelfOcclusionCheck = True):
    """
    Return the vertex indices of the mesh's occluding boundary under rotation R: the vertices of edges between a triangle facing the viewer and one facing away. With ``performSelfOcclusionCheck``, vertices hidden behind other parts of the mesh are removed by casting a ray from each towards the viewer.
    """
    rotated = mesh.vertices.dot(R.T)

    faces = edgeTopology.adjacentFaces
    interior = np.all(faces >= 0, axis = 1)
    if faces.size and faces.max() >= mesh.tvi.shape[0]:
        raise InvalidInput('The edge topology refers to triangles outside the mesh of %d triangles.' % mesh.tvi.shape[0])

    # The viewer looks down the -z axis, so triangles facing it have normals with positive z
    facing = calcFaceNormals(rotated, mesh.tvi)[:, 2] > 0

    f = faces[interior]
    boundary = facing[f[:, 0]] != facing[f[:, 1]]
    vertexInd = np.unique(edgeTopology.adjacentVertices[interior][boundary])

    if not performSelfOcclusionCheck or vertexInd.size == 0:
        return vertexInd

    v0 = rotated[mesh.tvi[:, 0], :]
    e1 = rotated[mesh.tvi[:, 1], :] - v0
    e2 = rotated[mesh.tvi[:, 2], :] - v0

    visible = []
    for i in vertexInd:
        # Leave out the triangles that share the vertex
        others = ~np.any(mesh.tvi == i, axis = 1)
        if not _rayHitsMesh(rotated[i], v0[others], e1[others], e2[others]):
            visible.append(i)

    return np.array(visible, dtype = np.int64)

def find_occluding_edge_correspondences(mesh, edgeTopology, renderingParameters, imageEdges, distanceThreshold = 64.0, performSelfOcclusionCheck = True):
    """
    Match 2D points on the face outline (e.g. contour landmarks) to the closest projected vertex on the mesh's occluding boundary under the current pose. Matches further away than ``distanceThreshold`` pixels are dropped.

    Returns the matched image points (numMatches, 2), their vertex indices (numMatches,), and their row indices into ``imageEdges`` (numMatches,).
    """
    imageEdges = np.asarray(imageEdges, dtype = np.float64).reshape(-1, 2)
    boundary = occludingBoundaryVertices(mesh, edgeTopology, renderingParameters.get_rotation_matrix(), performSelfOcclusionCheck)

    if boundary.size == 0 or imageEdges.shape[0] == 0:
        return np.zeros((0, 2)), np.zeros(0, dtype = np.int64), np.zeros(0, dtype = np.int64)

    projected = projectPoints(mesh.vertices[boundary], get3x4AffineCameraMatrix(renderingParameters))

    NN = NearestNeighbors(n_neighbors = 1)
    NN.fit(projected)
    distance, ind = NN.kneighbors(imageEdges)

    keep = distance[:, 0] <= distanceThreshold
    return imageEdges[keep], boundary[ind[keep, 0]], np.flatnonzero(keep)
