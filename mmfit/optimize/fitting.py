#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Created on Wed Mar 14 16:02:18 2018

@author: leon
"""

import logging
from collections import namedtuple
from dataclasses import dataclass
from typing import Optional
import numpy as np
from ..errors import FittingError, InvalidInput, NumericalDegeneracy, UnmappedLandmark
from ..landmarks import LandmarkCollection
from ..models import BlendshapeSet
from ..utils.mesh import Mesh, sampleToMesh
from .camera import RenderingParameters, estimate_orthographic_projection_linear, get3x4AffineCameraMatrix
from .contour import ContourLandmarks, ModelContour, get_contour_correspondences, frontalRenderingParameters, turnedAwaySide, find_occluding_edge_correspondences
from .shape import fit_shape_to_landmarks_linear, fit_blendshapes_to_landmarks_nnls

logger = logging.getLogger(__name__)

# Contour landmarks further than this many pixels from the projected occluding boundary are not matched to it
OCCLUDING_EDGE_THRESHOLD = 180.0

@dataclass(frozen = True)
class FitSettings:
    """Parameters of ``fit_shape_and_pose``

    numIterations: number of pose and shape refinement rounds; all of them are always run
    numShapeCoefficientsToFit: fit only the first shape principal components, None fits all of them. Fewer coefficients keep the fit from overfitting when there are few landmarks.
    lamb: weight of the shape coefficient regularization
    """
    numIterations: int = 5
    numShapeCoefficientsToFit: Optional[int] = None
    lamb: float = 30.0

    def validate(self, numComponents):
        """
        Raise InvalidInput for settings that cannot be used with a shape model of ``numComponents`` principal components.
        """
        if int(self.numIterations) != self.numIterations or self.numIterations < 1:
            raise InvalidInput('numIterations must be a positive integer, got %r.' % (self.numIterations,))
        if not np.isfinite(self.lamb) or self.lamb < 0:
            raise InvalidInput('lamb must be a non-negative number, got %r.' % (self.lamb,))
        if self.numShapeCoefficientsToFit is not None:
            n = self.numShapeCoefficientsToFit
            if int(n) != n or not 0 <= n <= numComponents:
                raise InvalidInput('numShapeCoefficientsToFit must be between 0 and %d, got %r.' % (numComponents, n))

FitResult = namedtuple('FitResult', ['mesh', 'renderingParameters', 'shapeCoefficients', 'blendshapeCoefficients', 'fittedContourPoints'])
FitResult.__doc__ = """Result of ``fit_shape_and_pose``

mesh (Mesh): the fitted mesh, PCA shape plus blendshapes, in model coordinates
renderingParameters (RenderingParameters): the fitted pose
shapeCoefficients (ndarray): PCA shape coefficients, standard normal units
blendshapeCoefficients (ndarray): one coefficient per blendshape
fittedContourPoints (ndarray): image points of the contour correspondences used in the last iteration, (numPoints, 2)
"""

def _addBlendshapes(shape, blendshapes, coefficients):
    if not len(blendshapes):
        return shape
    return shape + blendshapes.get_deformation(coefficients)

def _fixedCorrespondences(landmarks, landmarkMapper, contourLandmarks, numVertices):
    """
    Map the landmarks that are not on the contour to model vertices. Landmarks without a mapping are skipped.
    """
    names, vertexIndices = [], []
    for name in landmarks.names:
        if name in contourLandmarks:
            continue
        try:
            vertexIndex = landmarkMapper.convert(name)
        except UnmappedLandmark:
            logger.debug('Skipping landmark %s, it has no vertex mapping', name)
            continue
        if vertexIndex >= numVertices:
            raise InvalidInput('Landmark %s maps to vertex %d but the model has %d vertices.' % (name, vertexIndex, numVertices))
        names.append(name)
        vertexIndices.append(vertexIndex)

    points = np.array([landmarks.get(name) for name in names]).reshape(-1, 2)
    return points, np.array(vertexIndices, dtype = np.int64)

def _initialPose(imagePoints, modelPoints, imageWidth, imageHeight):
    """
    Pose for selecting contour vertices in the first iteration: a linear estimate from the non-contour correspondences when there are enough of them, else a frontal pose. Returns None if neither is determined.
    """
    if imagePoints.shape[0] >= 4:
        try:
            pose = estimate_orthographic_projection_linear(imagePoints, modelPoints, True, imageHeight)
            return RenderingParameters(pose, imageWidth, imageHeight)
        except NumericalDegeneracy as e:
            logger.debug('Using a frontal initial pose, the non-contour landmarks do not determine one: %s', e)
    return frontalRenderingParameters(imagePoints, modelPoints, imageWidth, imageHeight)

def fit_shape_and_pose(morphableModel, blendshapes, landmarks, landmarkIds, landmarkMapper, imageWidth, imageHeight, edgeTopology, contourLandmarks, modelContour, numIterations = 5, numShapeCoefficientsToFit = None, lamb = 30.0):
    """
    Fit the pose (camera), shape coefficients, and expression blendshape coefficients of a Morphable Model to 2D landmarks, alternating between them for a fixed number of iterations.

    Args:
        morphableModel (MorphableModel): the model to fit
        blendshapes (BlendshapeSet): expression blendshapes, may be empty or None
        landmarks (ndarray): detected landmark positions in image pixels with y pointing down, (numLandmarks, 2)
        landmarkIds (list): id of each landmark
        landmarkMapper (LandmarkMapper): maps landmark ids that are not on the contour to model vertices; unmapped landmarks are skipped
        imageWidth, imageHeight (int): image size in pixels
        edgeTopology (EdgeTopology): mesh edge topology for matching contour landmarks to the occluding boundary, or None to only use the model contour
        contourLandmarks (ContourLandmarks): which landmark ids lie on the face contour, or None
        modelContour (ModelContour): candidate model vertices of the face contour, or None
        numIterations (int): number of fitting iterations
        numShapeCoefficientsToFit (int): fit only the first principal components, None fits all of them
        lamb (float): weight of the shape coefficient regularization

    Each iteration (1) picks the contour vertex for each contour landmark under the previous pose, and from the second iteration on matches the contour landmarks on the side turned away from the camera to the occluding boundary instead, where a boundary vertex is close enough, (2) estimates the pose from the current mesh, (3) fits the blendshape and then the shape coefficients, and (4) updates the mesh. Errors raised inside the loop carry the iteration index in their ``iteration`` attribute.

    The first contour selection uses a pose estimated from the non-contour landmarks alone, or a frontal pose fitted to them if they are too few or coplanar. If not even that is determined, the contour landmarks are left out of the first iteration.

    Returns a FitResult (mesh, renderingParameters, shapeCoefficients, blendshapeCoefficients, fittedContourPoints).
    """
    shapeModel = morphableModel.get_shape_model()
    numVertices = shapeModel.get_num_vertices()

    settings = FitSettings(numIterations, numShapeCoefficientsToFit, lamb)
    settings.validate(shapeModel.get_num_principal_components())

    if imageWidth <= 0 or imageHeight <= 0:
        raise InvalidInput('The image must have a positive size, got %s x %s.' % (imageWidth, imageHeight))

    if blendshapes is None:
        blendshapes = BlendshapeSet()
    if len(blendshapes) and blendshapes.numVertices != numVertices:
        raise InvalidInput('The blendshapes have %d vertices but the shape model has %d.' % (blendshapes.numVertices, numVertices))

    if contourLandmarks is None:
        contourLandmarks = ContourLandmarks()
    if modelContour is None:
        modelContour = ModelContour()

    landmarks = LandmarkCollection.fromArrays(landmarks, landmarkIds)
    if not len(landmarks):
        raise InvalidInput('There are no landmarks to fit to.')

    fixedPoints, fixedVertices = _fixedCorrespondences(landmarks, landmarkMapper, contourLandmarks, numVertices)
    hasContour = any(name in contourLandmarks for name in landmarks.names)

    logger.debug('Fitting to %d landmarks, %d mapped, %d on the contour, %s', len(landmarks), fixedVertices.size, sum(name in contourLandmarks for name in landmarks.names), settings)

    numCoef = shapeModel.get_num_principal_components() if settings.numShapeCoefficientsToFit is None else int(settings.numShapeCoefficientsToFit)
    shapeCoefficients = np.zeros(numCoef)
    blendshapeCoefficients = np.zeros(len(blendshapes))

    pcaShape = shapeModel.draw_sample(shapeCoefficients)
    combinedShape = _addBlendshapes(pcaShape, blendshapes, blendshapeCoefficients)

    renderingParameters = None
    contourPoints = np.zeros((0, 2))

    for it in range(settings.numIterations):
        try:
            vertices = combinedShape.reshape(-1, 3)

            # Contour correspondences under the previous pose
            contourPoints, contourVertices = np.zeros((0, 2)), np.zeros(0, dtype = np.int64)
            selectionPose = renderingParameters
            if hasContour and selectionPose is None:
                selectionPose = _initialPose(fixedPoints, vertices[fixedVertices, :], imageWidth, imageHeight)
                if selectionPose is None:
                    logger.debug('No initial pose, leaving the contour landmarks out of the first iteration')

            if hasContour and selectionPose is not None:
                contourPoints, contourVertices, contourIds = get_contour_correspondences(landmarks, contourLandmarks, modelContour, vertices, selectionPose)

                if edgeTopology is not None and renderingParameters is not None:
                    side = turnedAwaySide(vertices, modelContour, renderingParameters.get_rotation_matrix())
                    if side is not None:
                        names = contourLandmarks.rightContour if side == 'right' else contourLandmarks.leftContour
                        names = [name for name in names if name in landmarks]
                        imageEdges = np.array([landmarks.get(name) for name in names]).reshape(-1, 2)
                        mesh = Mesh(vertices, shapeModel.get_triangle_list())
                        edgePoints, edgeVertices, edgeInd = find_occluding_edge_correspondences(mesh, edgeTopology, renderingParameters, imageEdges, OCCLUDING_EDGE_THRESHOLD)

                        # A landmark matched to the occluding boundary replaces its model contour correspondence
                        replaced = {names[i] for i in edgeInd}
                        keep = np.array([name not in replaced for name in contourIds], dtype = bool)
                        contourPoints = np.r_[contourPoints[keep], edgePoints]
                        contourVertices = np.r_[contourVertices[keep], edgeVertices]

            imagePoints = np.r_[fixedPoints, contourPoints]
            vertexIndices = np.r_[fixedVertices, contourVertices]
            if vertexIndices.size < 4:
                raise InvalidInput('Only %d usable landmark correspondences, at least 4 are needed to estimate the pose.' % vertexIndices.size)

            # Pose from the current mesh
            pose = estimate_orthographic_projection_linear(imagePoints, vertices[vertexIndices, :], True, imageHeight)
            renderingParameters = RenderingParameters(pose, imageWidth, imageHeight)
            affine = get3x4AffineCameraMatrix(renderingParameters)

            # Blendshapes on top of the current PCA shape, then the PCA shape on top of the blendshapes
            blendshapeCoefficients = fit_blendshapes_to_landmarks_nnls(blendshapes, pcaShape, affine, imagePoints, vertexIndices)
            meanPlusBlendshapes = _addBlendshapes(shapeModel.get_mean(), blendshapes, blendshapeCoefficients)
            shapeCoefficients = fit_shape_to_landmarks_linear(shapeModel, affine, imagePoints, vertexIndices, meanPlusBlendshapes, settings.lamb, numCoef)

            pcaShape = shapeModel.draw_sample(shapeCoefficients)
            combinedShape = _addBlendshapes(pcaShape, blendshapes, blendshapeCoefficients)

        except FittingError as e:
            e.iteration = it
            raise

        logger.debug('Iteration %d: %d correspondences (%d on the contour), %r', it, vertexIndices.size, contourVertices.size, renderingParameters)

    colorModel = morphableModel.get_color_model()
    color = colorModel.get_mean() if morphableModel.has_color_model() else None
    mesh = sampleToMesh(combinedShape, color, shapeModel.get_triangle_list(), shapeModel.get_triangle_list(), morphableModel.get_texture_coordinates())

    return FitResult(mesh, renderingParameters, shapeCoefficients, blendshapeCoefficients, contourPoints)
