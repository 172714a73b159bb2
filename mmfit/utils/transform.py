#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Created on Tue Mar 13 10:12:41 2018

@author: leon
"""
import numpy as np
from scipy.spatial.transform import Rotation

def rotMat2angle(R):
    """
    Conversion between 3x3 rotation matrix and Euler angles psi, theta, and phi in radians (rotations about the x, y, and z axes, respectively), with R = Rz(phi) Ry(theta) Rx(psi). If the input is 3x3, then the output will return a size-3 array containing psi, theta, and phi. If the input is a size-3 array, then the output will return the 3x3 rotation matrix.
    """
    R = np.asarray(R, dtype = np.float64)
    if R.shape == (3, 3):
        if abs(R[2, 0]) < 1:
            theta = -np.arcsin(R[2, 0])
            psi = np.arctan2(R[2, 1]/np.cos(theta), R[2, 2]/np.cos(theta))
            phi = np.arctan2(R[1, 0]/np.cos(theta), R[0, 0]/np.cos(theta))
        else:
            # Gimbal lock, phi is arbitrary so set it to 0
            phi = 0
            if R[2, 0] <= -1:
                theta = np.pi/2
                psi = np.arctan2(R[0, 1], R[0, 2])
            else:
                theta = -np.pi/2
                psi = np.arctan2(-R[0, 1], -R[0, 2])

        return np.array([psi, theta, phi])

    elif R.shape == (3,):
        psi, theta, phi = R
        Rx = np.array([[1, 0, 0], [0, np.cos(psi), -np.sin(psi)], [0, np.sin(psi), np.cos(psi)]])
        Ry = np.array([[np.cos(theta), 0, np.sin(theta)], [0, 1, 0], [-np.sin(theta), 0, np.cos(theta)]])
        Rz = np.array([[np.cos(phi), -np.sin(phi), 0], [np.sin(phi), np.cos(phi), 0], [0, 0, 1]])

        return np.dot(Rz, np.dot(Ry, Rx))

    raise ValueError('Expected a 3x3 rotation matrix or 3 Euler angles, got shape %s' % (R.shape,))

def rotMat2quat(R):
    """
    Unit quaternion [x, y, z, w] of a rotation matrix, with w >= 0.
    """
    q = Rotation.from_matrix(R).as_quat()
    if q[3] < 0:
        q = -q
    return q

def quat2rotMat(q):
    return Rotation.from_quat(q).as_matrix()

def quat2angle(q):
    """
    Euler angles [pitch, yaw, roll] in radians of a quaternion [x, y, z, w]. Same convention as ``rotMat2angle``: pitch about x, yaw about y, roll about z, applied in that order, i.e. R = Rz(roll) Ry(yaw) Rx(pitch).
    """
    x, y, z, w = q / np.linalg.norm(q)

    pitch = np.arctan2(2 * (y*z + w*x), w*w - x*x - y*y + z*z)
    yaw = np.arcsin(np.clip(-2 * (x*z - w*y), -1, 1))
    roll = np.arctan2(2 * (x*y + w*z), w*w + x*x - y*y - z*z)

    return np.array([pitch, yaw, roll])

def homogeneous(R = None, t = None, s = None):
    """
    4x4 matrix of a rotation R (3x3), translation t (3,) and uniform scale s, composed as T * S * R.
    """
    M = np.eye(4)
    if R is not None:
        M[:3, :3] = R
    if s is not None:
        M[:3, :] *= s
    if t is not None:
        M[:3, 3] = t
    return M

def ortho(left, right, bottom, top, zNear = -1., zFar = 1.):
    """
    Orthographic projection matrix mapping the box [left, right] x [bottom, top] x [-zNear, -zFar] to the clip cube [-1, 1]^3, like OpenGL's glOrtho.
    """
    P = np.eye(4)
    P[0, 0] = 2 / (right - left)
    P[1, 1] = 2 / (top - bottom)
    P[2, 2] = -2 / (zFar - zNear)
    P[0, 3] = -(right + left) / (right - left)
    P[1, 3] = -(top + bottom) / (top - bottom)
    P[2, 3] = -(zFar + zNear) / (zFar - zNear)
    return P

def viewportMatrix(viewport):
    """
    4x4 matrix taking normalized device coordinates to window coordinates for a viewport (x0, y0, width, height). A negative height, as in the OpenCV viewport (0, imageHeight, imageWidth, -imageHeight), puts the origin at the top left with y pointing down.
    """
    x0, y0, w, h = viewport
    V = np.eye(4)
    V[0, 0] = w / 2
    V[0, 3] = x0 + w / 2
    V[1, 1] = h / 2
    V[1, 3] = y0 + h / 2
    return V
