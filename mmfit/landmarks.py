#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Created on Mon Mar 12 15:20:07 2018

@author: leon
"""
import os
from collections import namedtuple
from .errors import InvalidInput, UnmappedLandmark
from .utils.buffer import checkPoints
from .utils.io import loadLandmarkMappings

Landmark = namedtuple('Landmark', ['name', 'coordinates'])

class LandmarkCollection:
    """The 2D landmarks detected in one image

    Args:
        landmarks (list): ``Landmark`` tuples, or pairs of (name, (x, y))

    Attributes:
        names (list): landmark ids as strings
        coordinates (ndarray): landmark positions in image pixels, (numLandmarks, 2)
    """
    def __init__(self, landmarks = ()):
        landmarks = [Landmark(str(name), coordinates) for name, coordinates in landmarks]
        self.names = [l.name for l in landmarks]
        if len(set(self.names)) != len(self.names):
            raise InvalidInput('Landmark ids must be unique within a collection.')

        self.coordinates = checkPoints([l.coordinates for l in landmarks], 2, name = 'landmarks')
        self._index = {name: i for i, name in enumerate(self.names)}

    @classmethod
    def fromArrays(cls, landmarks, landmarkIds):
        """
        Pair up an array of 2D points (numLandmarks, 2) with a list of ids of the same length.
        """
        points = checkPoints(landmarks, 2, name = 'landmarks')
        landmarkIds = list(landmarkIds)
        if points.shape[0] != len(landmarkIds):
            raise InvalidInput('Got %d landmarks but %d landmark ids.' % (points.shape[0], len(landmarkIds)))
        return cls(zip(landmarkIds, points))

    def __len__(self):
        return len(self.names)

    def __iter__(self):
        for name, point in zip(self.names, self.coordinates):
            yield Landmark(name, point)

    def __contains__(self, name):
        return str(name) in self._index

    def get(self, name, default = None):
        i = self._index.get(str(name))
        if i is None:
            return default
        return self.coordinates[i]

class LandmarkMapper:
    """Maps landmark ids of a detector (e.g. the 68 iBug points) to vertex indices of a model

    Args:
        mappings (str or dict): a YAML mapping table filename, or a dict from landmark id to vertex index. Without it, the mapper is the identity, i.e. the landmark id itself is parsed as the vertex index.

    The table cannot be changed after construction.
    """
    def __init__(self, mappings = None):
        if isinstance(mappings, (str, bytes, os.PathLike)):
            mappings = loadLandmarkMappings(mappings)

        if mappings is None:
            self._mappings = None
        else:
            self._mappings = {}
            for name, vertexIndex in dict(mappings).items():
                if int(vertexIndex) != vertexIndex or vertexIndex < 0:
                    raise InvalidInput('Landmark %s maps to %r, which is not a vertex index.' % (name, vertexIndex))
                self._mappings[str(name)] = int(vertexIndex)

    @classmethod
    def load(cls, fName):
        return cls(fName)

    def is_identity(self):
        return self._mappings is None

    def __len__(self):
        return 0 if self._mappings is None else len(self._mappings)

    def __contains__(self, name):
        try:
            self.convert(name)
        except UnmappedLandmark:
            return False
        return True

    def __repr__(self):
        if self.is_identity():
            return 'LandmarkMapper(identity)'
        return 'LandmarkMapper(%d mappings)' % len(self)

    def convert(self, name):
        """
        Return the vertex index for a landmark id. Raises UnmappedLandmark if there is none.
        """
        name = str(name)
        if self._mappings is None:
            try:
                vertexIndex = int(name)
            except ValueError:
                raise UnmappedLandmark('Landmark id %r is not a vertex index, so the identity mapper cannot map it.' % name) from None
            if vertexIndex < 0:
                raise UnmappedLandmark('Landmark id %r is not a vertex index.' % name)
            return vertexIndex

        try:
            return self._mappings[name]
        except KeyError:
            raise UnmappedLandmark('No vertex mapping for landmark %r.' % name) from None
