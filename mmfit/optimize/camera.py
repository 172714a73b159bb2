#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Created on Fri Feb 16 11:42:30 2018

@author: leon
"""

from collections import namedtuple
import numpy as np
from ..errors import InvalidInput, NumericalDegeneracy
from ..utils.buffer import checkPoints
from ..utils.transform import rotMat2quat, quat2rotMat, quat2angle, homogeneous, ortho, viewportMatrix

# Smallest singular value, relative to the largest, below which the camera system is taken as rank-deficient
RANK_TOLERANCE = 1e-10

ScaledOrthoProjectionParameters = namedtuple('ScaledOrthoProjectionParameters', ['R', 's', 'tx', 'ty'])
ScaledOrthoProjectionParameters.__doc__ = """Parameters of a scaled orthographic projection, x = s * R[:2, :] X + (tx, ty)

R (ndarray): rotation matrix, (3, 3)
s (float): scale
tx, ty (float): translation in the image plane
"""

def estimate_orthographic_projection_linear(imagePoints, modelPoints, isViewportUpsideDown, viewportHeight = None):
    """
    Estimate the parameters of a scaled orthographic projection from at least 4 corresponding 2D image points (numPoints, 2) and 3D model points (numPoints, 3) or homogeneous (numPoints, 4). If the image y axis points down (``isViewportUpsideDown``, as for OpenCV images), the y coordinates are flipped with ``viewportHeight`` before the estimation, so the returned pose has y pointing up.
    """
    lm2D = checkPoints(imagePoints, 2, name = 'imagePoints')
    lm3D = checkPoints(modelPoints, 3, name = 'modelPoints')

    numLandmarks = lm2D.shape[0]
    if lm3D.shape[0] != numLandmarks:
        raise InvalidInput('Got %d image points but %d model points.' % (numLandmarks, lm3D.shape[0]))
    if numLandmarks < 4:
        raise InvalidInput('At least 4 point correspondences are needed to estimate the pose, got %d.' % numLandmarks)

    if isViewportUpsideDown:
        if viewportHeight is None:
            raise InvalidInput('The viewport height is needed to flip an upside-down viewport.')
        lm2D[:, 1] = viewportHeight - lm2D[:, 1]

    return splitCamMat(estCamMat(lm2D, lm3D))

def estCamMat(lm2D, lm3D):
    """
    Direct linear transform / "Gold Standard Algorithm" to estimate the 2x4 affine camera matrix from 2D-3D landmark correspondences. The input 2D and 3D landmark NumPy arrays have XY and XYZ coordinates in each row, respectively. For an affine camera, the algebraic and geometric errors are equivalent, so the linear least squares solution is final.
    """
    numLandmarks = lm2D.shape[0]

    # Normalize landmark coordinates; preconditioning
    c2D = np.mean(lm2D, axis = 0)
    uvCentered = lm2D - c2D
    s2D = np.linalg.norm(uvCentered, axis = 1).mean()

    c3D = np.mean(lm3D, axis = 0)
    xyzCentered = lm3D - c3D
    s3D = np.linalg.norm(xyzCentered, axis = 1).mean()

    if s2D == 0 or s3D == 0:
        raise NumericalDegeneracy('All image points or all model points coincide.')

    k2D = np.sqrt(2) / s2D
    k3D = np.sqrt(3) / s3D
    x = uvCentered * k2D
    X = np.c_[xyzCentered * k3D, np.ones(numLandmarks)]

    # Similarity transformations for normalization
    T = np.array([[k2D, 0, -k2D * c2D[0]], [0, k2D, -k2D * c2D[1]], [0, 0, 1]])
    U = np.array([[k3D, 0, 0, -k3D * c3D[0]], [0, k3D, 0, -k3D * c3D[1]], [0, 0, k3D, -k3D * c3D[2]], [0, 0, 0, 1]])

    # Build linear system of equations in 8 unknowns of projection matrix
    A = np.zeros((2 * numLandmarks, 8))
    A[0: 2*numLandmarks - 1: 2, :4] = X
    A[1: 2*numLandmarks: 2, 4:] = X

    # Solve linear system and de-normalize
    p8, _, rank, sv = np.linalg.lstsq(A, x.flatten(), rcond = None)
    if rank < 8 or sv[-1] < RANK_TOLERANCE * sv[0]:
        raise NumericalDegeneracy('The model points are coplanar or collinear, the camera cannot be estimated (rank %d of 8).' % min(rank, 7))

    Pnorm = np.vstack((p8.reshape(2, 4), np.array([0, 0, 0, 1])))
    P = np.linalg.inv(T).dot(Pnorm).dot(U)

    return P[:2, :]

def splitCamMat(P):
    """
    Split a 2x4 affine camera matrix into the scale, rotation, and translation of a scaled orthographic projection. The scale is the mean norm of the first two rows, the rotation is found by Gram-Schmidt orthogonalization of those rows and completed with their cross product.
    """
    R1 = P[0, 0: 3]
    R2 = P[1, 0: 3]
    n1 = np.linalg.norm(R1)
    n2 = np.linalg.norm(R2)
    if n1 == 0 or n2 == 0:
        raise NumericalDegeneracy('The estimated camera matrix has a zero row.')

    s = (n1 + n2) / 2

    r1 = R1 / n1
    r2 = R2 - np.dot(r1, R2) * r1
    n2 = np.linalg.norm(r2)
    if n2 < RANK_TOLERANCE * s:
        raise NumericalDegeneracy('The rows of the estimated camera matrix are parallel.')
    r2 = r2 / n2
    r3 = np.cross(r1, r2)
    R = np.vstack((r1, r2, r3))

    return ScaledOrthoProjectionParameters(R, s, P[0, 3], P[1, 3])

class RenderingParameters:
    """The estimated pose of a model together with the viewport it was estimated for

    Args:
        orthoParams (ScaledOrthoProjectionParameters): estimated pose, with the y axis pointing up
        screenWidth (int): viewport width in pixels
        screenHeight (int): viewport height in pixels

    Attributes:
        rotation (ndarray): rotation as unit quaternion [x, y, z, w]
        s (float): scale
        tx, ty (float): translation in the image plane
        screenWidth, screenHeight (int): viewport size
    """
    def __init__(self, orthoParams, screenWidth, screenHeight):
        if screenWidth <= 0 or screenHeight <= 0:
            raise InvalidInput('The viewport must have a positive size, got %s x %s.' % (screenWidth, screenHeight))
        if not orthoParams.s > 0:
            raise InvalidInput('The scale must be positive, got %s.' % orthoParams.s)

        self.rotation = rotMat2quat(np.asarray(orthoParams.R, dtype = np.float64))
        self.s = float(orthoParams.s)
        self.tx = float(orthoParams.tx)
        self.ty = float(orthoParams.ty)
        self.screenWidth = screenWidth
        self.screenHeight = screenHeight

    def __repr__(self):
        pitch, yaw, roll = np.degrees(self.get_rotation_euler_angles())
        return 'RenderingParameters(pitch = %.1f, yaw = %.1f, roll = %.1f, s = %g, tx = %g, ty = %g)' % (pitch, yaw, roll, self.s, self.tx, self.ty)

    def get_rotation(self):
        """Returns the rotation quaternion [x y z w]."""
        return self.rotation.copy()

    def get_rotation_matrix(self):
        return quat2rotMat(self.rotation)

    def get_rotation_euler_angles(self):
        """
        Returns the rotation's Euler angles in radians as [pitch, yaw, roll], the rotations about the x, y and z axes with R = Rz(roll) Ry(yaw) Rx(pitch).
        """
        return quat2angle(self.rotation)

    def get_scaled_ortho_projection_parameters(self):
        return ScaledOrthoProjectionParameters(self.get_rotation_matrix(), self.s, self.tx, self.ty)

    def get_modelview(self):
        """Returns the 4x4 model-view matrix, translation * scale * rotation."""
        return homogeneous(self.get_rotation_matrix(), np.array([self.tx, self.ty, 0]), self.s)

    def get_projection(self):
        """Returns the 4x4 orthographic projection matrix of the viewport."""
        return ortho(0, self.screenWidth, 0, self.screenHeight)

    def get_viewport(self):
        """Returns the OpenCV-style viewport (0, height, width, -height), which has y pointing down."""
        return np.array([0, self.screenHeight, self.screenWidth, -self.screenHeight], dtype = np.float64)

def get3x4AffineCameraMatrix(renderingParameters):
    """
    Return the 3x4 affine camera matrix that takes homogeneous model points to homogeneous image pixel coordinates (y pointing down), i.e. the x, y, and w rows of viewport * projection * modelview.
    """
    M = viewportMatrix(renderingParameters.get_viewport()).dot(renderingParameters.get_projection()).dot(renderingParameters.get_modelview())
    return M[[0, 1, 3], :]

def projectPoints(points, affineCameraMatrix):
    """
    Project (numPoints, 3) model points with a 3x4 affine camera matrix, returning (numPoints, 2) image points.
    """
    points = np.asarray(points, dtype = np.float64).reshape(-1, 3)
    return np.c_[points, np.ones(points.shape[0])].dot(affineCameraMatrix[:2, :].T)
