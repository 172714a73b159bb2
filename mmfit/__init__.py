#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Fitting of 3D Morphable Face Models to 2D facial landmarks: pose estimation with a scaled orthographic camera, linear shape and blendshape fitting, and contour correspondences.
"""

from .errors import FittingError, InvalidInput, NumericalDegeneracy, UnmappedLandmark, UnsupportedDataFormat
from .models import PcaModel, MorphableModel, Blendshape, BlendshapeSet, EdgeTopology
from .landmarks import Landmark, LandmarkCollection, LandmarkMapper
from .utils.io import load_model, load_blendshapes, load_edge_topology
from .utils.mesh import Mesh
from .optimize.camera import ScaledOrthoProjectionParameters, RenderingParameters, estimate_orthographic_projection_linear, get3x4AffineCameraMatrix
from .optimize.contour import ContourLandmarks, ModelContour, get_contour_correspondences, find_occluding_edge_correspondences
from .optimize.shape import fit_shape_to_landmarks_linear, fit_blendshapes_to_landmarks_nnls
from .optimize.fitting import FitSettings, FitResult, fit_shape_and_pose

__version__ = '0.1.0'
