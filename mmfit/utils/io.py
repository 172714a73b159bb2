#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Created on Fri Feb 16 11:54:19 2018

@author: leon
"""
import json
import logging
import numpy as np
import yaml
from ..errors import UnsupportedDataFormat
from ..models import PcaModel, MorphableModel, Blendshape, BlendshapeSet, EdgeTopology

logger = logging.getLogger(__name__)

def _loadNpz(fName, required):
    try:
        with np.load(fName, allow_pickle = False) as data:
            arrays = {key: data[key] for key in data.files}
    except ValueError as e:
        raise UnsupportedDataFormat('Could not read %s as a .npz archive: %s' % (fName, e)) from e

    missing = [key for key in required if key not in arrays]
    if missing:
        raise UnsupportedDataFormat('%s is missing the arrays %s' % (fName, ', '.join(missing)))
    return arrays

def _loadJson(fName, key):
    try:
        with open(fName) as fd:
            data = json.load(fd)
    except ValueError as e:
        raise UnsupportedDataFormat('Could not parse %s as JSON: %s' % (fName, e)) from e

    if not isinstance(data, dict) or key not in data:
        raise UnsupportedDataFormat('%s has no top-level "%s" entry' % (fName, key))
    return data[key]

def _loadYaml(fName):
    try:
        with open(fName) as fd:
            data = yaml.safe_load(fd) or {}
    except yaml.YAMLError as e:
        raise UnsupportedDataFormat('Could not parse %s as YAML: %s' % (fName, e)) from e

    if not isinstance(data, dict):
        raise UnsupportedDataFormat('%s should contain a mapping at the top level' % fName)
    return data

def load_model(fName):
    """
    Load a MorphableModel from a .npz file. The file holds the shape model as 'shapeMean' (3 * numVertices,), 'shapeBasis' (3 * numVertices, numComponents), 'shapeEigenvalues' (numComponents,), and 'triangles' (numTriangles, 3). A colour model ('colorMean', 'colorBasis', 'colorEigenvalues', and optionally 'colorTriangles') and 'textureCoordinates' (numVertices, 2) are optional.
    """
    model = _loadNpz(fName, ['shapeMean', 'shapeBasis', 'shapeEigenvalues', 'triangles'])

    shapeModel = PcaModel(model['shapeMean'], model['shapeBasis'], model['shapeEigenvalues'], model['triangles'])

    colorModel = None
    if 'colorMean' in model:
        colorModel = PcaModel(model['colorMean'], model['colorBasis'], model['colorEigenvalues'], model.get('colorTriangles', model['triangles']))

    logger.debug('Loaded %r from %s', shapeModel, fName)

    return MorphableModel(shapeModel, colorModel, model.get('textureCoordinates'))

def load_blendshapes(fName):
    """
    Load a BlendshapeSet from a .npz file with 'names' (numBlendshapes,) and 'deformations' (3 * numVertices, numBlendshapes).
    """
    data = _loadNpz(fName, ['names', 'deformations'])
    names = data['names']
    deformations = data['deformations']
    if deformations.ndim != 2 or deformations.shape[1] != names.size:
        raise UnsupportedDataFormat('%s has %d blendshape names but deformations of shape %s' % (fName, names.size, deformations.shape))

    return BlendshapeSet([Blendshape(name, np.ascontiguousarray(deformations[:, i])) for i, name in enumerate(names)])

def load_edge_topology(fName):
    """
    Load an EdgeTopology from a JSON file laid out as {"edge_topology": {"adjacent_faces": [[f0, f1], ...], "adjacent_vertices": [[v0, v1], ...]}}. Indices in the file are one-based and a face index of 0 marks a missing neighbour.
    """
    data = _loadJson(fName, 'edge_topology')
    try:
        adjacentFaces = np.array(data['adjacent_faces'], dtype = np.int64).reshape(-1, 2)
        adjacentVertices = np.array(data['adjacent_vertices'], dtype = np.int64).reshape(-1, 2)
    except (KeyError, TypeError, ValueError) as e:
        raise UnsupportedDataFormat('Malformed edge topology in %s: %s' % (fName, e)) from e

    return EdgeTopology(adjacentFaces - 1, adjacentVertices - 1)

def loadModelContour(fName):
    """
    Read the right and left contour vertex indices from a JSON file laid out as {"model_contour": {"right_contour": [...], "left_contour": [...]}}.
    """
    data = _loadJson(fName, 'model_contour')
    try:
        return [int(v) for v in data['right_contour']], [int(v) for v in data['left_contour']]
    except (KeyError, TypeError, ValueError) as e:
        raise UnsupportedDataFormat('Malformed model contour in %s: %s' % (fName, e)) from e

def loadLandmarkMappings(fName):
    """
    Read the 'landmark_mappings' table of a YAML mapping file, {landmark id: vertex index}. Landmark ids are returned as strings.
    """
    data = _loadYaml(fName)
    mappings = data.get('landmark_mappings')
    if not isinstance(mappings, dict):
        raise UnsupportedDataFormat('%s has no "landmark_mappings" table' % fName)

    try:
        return {str(name): int(vertexIndex) for name, vertexIndex in mappings.items()}
    except (TypeError, ValueError) as e:
        raise UnsupportedDataFormat('Malformed landmark mapping in %s: %s' % (fName, e)) from e

def loadContourLandmarks(fName):
    """
    Read the right and left contour landmark ids from the 'contour_landmarks' table of a YAML mapping file, {right: [...], left: [...]}. Ids are returned as strings.
    """
    data = _loadYaml(fName)
    contour = data.get('contour_landmarks')
    if not isinstance(contour, dict) or 'right' not in contour or 'left' not in contour:
        raise UnsupportedDataFormat('%s has no "contour_landmarks" table with "right" and "left" lists' % fName)

    return [str(name) for name in contour['right']], [str(name) for name in contour['left']]
