#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Created on Wed Mar 14 09:31:52 2018

@author: leon
"""

import numpy as np
from scipy.linalg import solve, LinAlgError
from scipy.optimize import nnls
from ..errors import InvalidInput, NumericalDegeneracy
from ..utils.buffer import checkPoints

def _landmarkSystem(basis, base, affineCameraMatrix, imagePoints, vertexIndices):
    """
    Linear system A c + b ~ 0 of the projected landmark residuals for a deformation basis (3 * numVertices, numCoef) added on top of a base shape. A is (2 * numLandmarks, numCoef), b is (2 * numLandmarks,) with the x and y residual of each landmark in consecutive rows.
    """
    numCoef = basis.shape[1]
    P = affineCameraMatrix[:2, :3]
    t = affineCameraMatrix[:2, 3]

    landmarkBasis = basis.reshape(-1, 3, numCoef)[vertexIndices, :, :]
    A = np.einsum('ij,ljk->lik', P, landmarkBasis).reshape(-1, numCoef)

    landmarkBase = np.asarray(base, dtype = np.float64).reshape(-1, 3)[vertexIndices, :]
    b = (landmarkBase.dot(P.T) + t - imagePoints).flatten()

    return A, b

def _checkCorrespondences(imagePoints, vertexIndices, numVertices):
    imagePoints = checkPoints(imagePoints, 2, name = 'imagePoints')
    vertexIndices = np.asarray(vertexIndices, dtype = np.int64).reshape(-1)
    if imagePoints.shape[0] != vertexIndices.size:
        raise InvalidInput('Got %d image points but %d vertex indices.' % (imagePoints.shape[0], vertexIndices.size))
    if vertexIndices.size == 0:
        raise InvalidInput('No landmark correspondences to fit to.')
    if vertexIndices.min() < 0 or vertexIndices.max() >= numVertices:
        raise InvalidInput('Vertex indices must lie in [0, %d).' % numVertices)
    return imagePoints, vertexIndices

def fit_shape_to_landmarks_linear(shapeModel, affineCameraMatrix, imagePoints, vertexIndices, baseShape = None, lamb = 3.0, numCoefficientsToFit = None):
    """
    Fit the shape coefficients of a PcaModel to 2D landmarks under a given affine camera (3x4, model to image pixels).

    The projected landmarks of ``baseShape + rescaledBasis * c`` are matched to ``imagePoints`` in the least squares sense, with a penalty of ``lamb * ||c||^2``:

        min_c ||A c + b||^2 + lamb ||c||^2  =>  (A'A + lamb I) c = -A'b

    where A holds the projected rescaled basis rows of the landmark vertices and b the residual of the projected base shape. Since the basis is rescaled by the standard deviations, the coefficients stay in standard normal units. ``baseShape`` defaults to the model mean; pass the mean plus any blendshape offsets to fit on top of an expression. ``numCoefficientsToFit`` limits the fit to the first principal components, None fits all of them.

    Returns the shape coefficients, (numCoefficientsToFit,).
    """
    numComponents = shapeModel.get_num_principal_components()
    if numCoefficientsToFit is None:
        numCoefficientsToFit = numComponents
    if int(numCoefficientsToFit) != numCoefficientsToFit or not 0 <= numCoefficientsToFit <= numComponents:
        raise InvalidInput('Cannot fit %s shape coefficients with a model of %d principal components.' % (numCoefficientsToFit, numComponents))
    numCoefficientsToFit = int(numCoefficientsToFit)
    if lamb < 0:
        raise InvalidInput('The regularization weight must be non-negative, got %s.' % lamb)

    imagePoints, vertexIndices = _checkCorrespondences(imagePoints, vertexIndices, shapeModel.get_num_vertices())

    if numCoefficientsToFit == 0:
        return np.zeros(0)

    if baseShape is None:
        baseShape = shapeModel.get_mean()

    A, b = _landmarkSystem(shapeModel.rescaledBasis[:, :numCoefficientsToFit], baseShape, affineCameraMatrix, imagePoints, vertexIndices)

    AtA = A.T.dot(A) + lamb * np.eye(numCoefficientsToFit)
    if lamb == 0 and np.linalg.matrix_rank(AtA) < numCoefficientsToFit:
        raise NumericalDegeneracy('%d landmarks do not determine %d shape coefficients without regularization.' % (vertexIndices.size, numCoefficientsToFit))

    try:
        return solve(AtA, -A.T.dot(b), assume_a = 'pos')
    except LinAlgError as e:
        raise NumericalDegeneracy('The shape coefficient system is singular: %s' % e) from e

def fit_blendshapes_to_landmarks_nnls(blendshapes, baseShape, affineCameraMatrix, imagePoints, vertexIndices):
    """
    Fit blendshape coefficients to 2D landmarks under a given affine camera (3x4, model to image pixels), on top of ``baseShape`` (usually the current PCA shape instance). The coefficients are constrained to be non-negative and solved with NNLS.

    Returns the blendshape coefficients, (numBlendshapes,).
    """
    numBlendshapes = len(blendshapes)
    if numBlendshapes == 0:
        return np.zeros(0)

    imagePoints, vertexIndices = _checkCorrespondences(imagePoints, vertexIndices, blendshapes.numVertices)

    A, b = _landmarkSystem(blendshapes.basis, baseShape, affineCameraMatrix, imagePoints, vertexIndices)

    try:
        coef = nnls(A, -b)[0]
    except RuntimeError as e:
        raise NumericalDegeneracy('NNLS did not converge for the blendshape coefficients: %s' % e) from e

    return coef
