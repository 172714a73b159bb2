#!/usr/bin/env python3
# -*- coding: utf-8 -*-
import numpy as np
from .errors import InvalidInput
from .utils.buffer import checkArray, readOnly
from .utils.mesh import sampleToMesh

class PcaModel:
    """A linear PCA model of shape or colour

    Args:
        mean (ndarray): mean of the model, (3 * numVertices,), with the x, y, z (or r, g, b) values of each vertex interleaved
        basis (ndarray): orthonormal principal components along the columns, (3 * numVertices, numComponents)
        eigenvalues (ndarray): variance of each principal component, (numComponents,)
        triangles (ndarray): vertex indices of each triangle, (numTriangles, 3)

    Attributes:
        mean (ndarray): read-only, (3 * numVertices,)
        basis (ndarray): read-only, (3 * numVertices, numComponents)
        eigenvalues (ndarray): read-only, (numComponents,)
        rescaledBasis (ndarray): ``basis`` with each column multiplied by the standard deviation of its component, read-only
        triangles (ndarray): read-only, (numTriangles, 3)
        numVertices (int): number of vertices in the model
        numComponents (int): number of principal components

    Calling ``PcaModel()`` with no arguments gives an empty model, which stands in for a missing colour model.
    """
    def __init__(self, mean = None, basis = None, eigenvalues = None, triangles = None):
        if mean is None:
            mean = np.zeros(0)
            basis = np.zeros((0, 0))
            eigenvalues = np.zeros(0)

        mean = checkArray(mean, 1, name = 'mean')
        basis = checkArray(basis, 2, name = 'basis')
        eigenvalues = checkArray(eigenvalues, 1, name = 'eigenvalues')

        if mean.size % 3 != 0:
            raise InvalidInput('The mean has %d entries, which is not a multiple of 3.' % mean.size)
        if basis.shape[0] != mean.size:
            raise InvalidInput('The basis has %d rows but the mean has %d entries.' % (basis.shape[0], mean.size))
        if basis.shape[1] != eigenvalues.size:
            raise InvalidInput('The basis has %d columns but there are %d eigenvalues.' % (basis.shape[1], eigenvalues.size))
        if np.any(eigenvalues < 0):
            raise InvalidInput('Eigenvalues must be non-negative.')

        if triangles is None:
            triangles = np.zeros((0, 3), dtype = np.int64)
        triangles = np.asarray(triangles)
        if triangles.size == 0:
            triangles = triangles.reshape(0, 3)
        if triangles.ndim != 2 or triangles.shape[1] != 3:
            raise InvalidInput('Triangles must be given as (numTriangles, 3) vertex indices.')
        if triangles.size and (triangles.min() < 0 or triangles.max() >= mean.size // 3):
            raise InvalidInput('Triangle vertex indices must lie in [0, %d).' % (mean.size // 3))

        self.mean = readOnly(mean)
        self.basis = readOnly(basis)
        self.eigenvalues = readOnly(eigenvalues)
        self.rescaledBasis = readOnly(basis * np.sqrt(eigenvalues))
        self.triangles = readOnly(triangles, dtype = np.int64)

        self.numVertices = mean.size // 3
        self.numComponents = eigenvalues.size

    def __repr__(self):
        return 'PcaModel(numVertices = %d, numComponents = %d, numTriangles = %d)' % (self.numVertices, self.numComponents, self.triangles.shape[0])

    def get_num_principal_components(self):
        return self.numComponents

    def get_data_dimension(self):
        return self.mean.size

    def get_num_vertices(self):
        return self.numVertices

    def get_triangle_list(self):
        return self.triangles

    def get_mean(self):
        return self.mean

    def get_mean_at_point(self, vertexIndex):
        """
        Return the x, y, z values of the mean at a vertex.
        """
        vertexIndex = self._checkVertexIndex(vertexIndex)
        return self.mean[3*vertexIndex: 3*vertexIndex + 3]

    def get_rescaled_pca_basis_at_point(self, vertexIndex):
        """
        Return the 3 rows of the rescaled basis belonging to a vertex, (3, numComponents).
        """
        vertexIndex = self._checkVertexIndex(vertexIndex)
        return self.rescaledBasis[3*vertexIndex: 3*vertexIndex + 3, :]

    def draw_sample(self, coefficients):
        """
        Return a sample from the model, mean + basis * (coefficients * sqrt(eigenvalues)). The coefficients are taken to follow a standard normal distribution, i.e. they are not scaled with the eigenvalues. Fewer coefficients than principal components may be given, the remaining ones are taken as 0.
        """
        coefficients = checkArray(coefficients, 1, name = 'coefficients')
        numCoef = coefficients.size
        if numCoef > self.numComponents:
            raise InvalidInput('Got %d coefficients but the model only has %d principal components.' % (numCoef, self.numComponents))

        return self.mean + np.dot(self.rescaledBasis[:, :numCoef], coefficients)

    def _checkVertexIndex(self, vertexIndex):
        if int(vertexIndex) != vertexIndex or not 0 <= vertexIndex < self.numVertices:
            raise InvalidInput('Vertex index %s is out of range for a model with %d vertices.' % (vertexIndex, self.numVertices))
        return int(vertexIndex)

class MorphableModel:
    """A 3D Morphable Model, consisting of a shape and a colour (albedo) PCA model sharing the same mesh, and optionally texture coordinates

    Args:
        shapeModel (PcaModel): the shape model
        colorModel (PcaModel): the colour model; None or an empty PcaModel if there is none
        textureCoordinates (ndarray): (u, v) of each vertex, (numVertices, 2)
    """
    def __init__(self, shapeModel, colorModel = None, textureCoordinates = None):
        if colorModel is None:
            colorModel = PcaModel()

        if colorModel.numVertices > 0:
            if colorModel.numVertices != shapeModel.numVertices:
                raise InvalidInput('The shape model has %d vertices but the colour model has %d.' % (shapeModel.numVertices, colorModel.numVertices))
            if not np.array_equal(colorModel.triangles, shapeModel.triangles):
                raise InvalidInput('The shape and colour models have a different triangle topology.')

        if textureCoordinates is None:
            textureCoordinates = np.zeros((0, 2))
        textureCoordinates = checkArray(textureCoordinates, 2, (None, 2), name = 'textureCoordinates')
        if textureCoordinates.shape[0] not in (0, shapeModel.numVertices):
            raise InvalidInput('Got %d texture coordinates for %d vertices.' % (textureCoordinates.shape[0], shapeModel.numVertices))

        self.shapeModel = shapeModel
        self.colorModel = colorModel
        self.textureCoordinates = readOnly(textureCoordinates)

    def __repr__(self):
        return 'MorphableModel(shape = %r, color = %r)' % (self.shapeModel, self.colorModel)

    def get_shape_model(self):
        return self.shapeModel

    def get_color_model(self):
        return self.colorModel

    def has_color_model(self):
        return self.colorModel.numVertices > 0

    def get_texture_coordinates(self):
        return self.textureCoordinates

    def get_mean(self):
        """
        Return the mean of the shape and colour models as a Mesh.
        """
        color = self.colorModel.get_mean() if self.has_color_model() else None
        return sampleToMesh(self.shapeModel.get_mean(), color, self.shapeModel.triangles, self.shapeModel.triangles, self.textureCoordinates)

    def draw_sample(self, shapeCoefficients, colorCoefficients = None):
        """
        Return the Mesh for the given shape and colour coefficients. Without colour coefficients, the colour is the mean of the colour model.
        """
        shape = self.shapeModel.draw_sample(shapeCoefficients)

        color = None
        if self.has_color_model():
            if colorCoefficients is None:
                color = self.colorModel.get_mean()
            else:
                color = self.colorModel.draw_sample(colorCoefficients)

        return sampleToMesh(shape, color, self.shapeModel.triangles, self.shapeModel.triangles, self.textureCoordinates)

class Blendshape:
    """A named expression blendshape, a (3 * numVertices,) deformation in the same xyzxyz... layout as ``PcaModel.mean``"""
    def __init__(self, name, deformation):
        self.name = str(name)
        self.deformation = readOnly(checkArray(deformation, 1, name = 'deformation'))

    def __repr__(self):
        return 'Blendshape(%r)' % self.name

class BlendshapeSet:
    """An ordered, immutable set of blendshapes that are added linearly on top of a PCA shape instance

    Args:
        blendshapes (list): Blendshape objects, all with deformations of the same length

    Attributes:
        names (tuple): blendshape names
        basis (ndarray): the deformations along the columns, (3 * numVertices, numBlendshapes), read-only
    """
    def __init__(self, blendshapes = ()):
        self._blendshapes = tuple(blendshapes)
        self.names = tuple(b.name for b in self._blendshapes)

        sizes = {b.deformation.size for b in self._blendshapes}
        if len(sizes) > 1:
            raise InvalidInput('All blendshapes must have deformations of the same length, got lengths %s.' % sorted(sizes))

        if self._blendshapes:
            self.basis = readOnly(np.column_stack([b.deformation for b in self._blendshapes]))
        else:
            self.basis = readOnly(np.zeros((0, 0)))

    def __len__(self):
        return len(self._blendshapes)

    def __iter__(self):
        return iter(self._blendshapes)

    def __getitem__(self, i):
        return self._blendshapes[i]

    def __repr__(self):
        return 'BlendshapeSet(%r)' % (self.names,)

    @property
    def numVertices(self):
        return self.basis.shape[0] // 3

    def get_deformation(self, coefficients):
        """
        Return the summed deformation basis * coefficients, (3 * numVertices,).
        """
        coefficients = checkArray(coefficients, 1, name = 'blendshape coefficients')
        if coefficients.size != len(self):
            raise InvalidInput('Got %d blendshape coefficients for %d blendshapes.' % (coefficients.size, len(self)))
        if not len(self):
            return np.zeros(0)
        return np.dot(self.basis, coefficients)

class EdgeTopology:
    """The edge topology of a triangle mesh, used to find occluding boundaries

    Args:
        adjacentFaces (ndarray): for each edge, the indices of the two triangles that share it, (numEdges, 2). Edges on the border of the mesh have -1 for the missing triangle.
        adjacentVertices (ndarray): for each edge, the indices of its two end vertices, (numEdges, 2)
    """
    def __init__(self, adjacentFaces, adjacentVertices):
        adjacentFaces = np.asarray(adjacentFaces, dtype = np.int64).reshape(-1, 2)
        adjacentVertices = np.asarray(adjacentVertices, dtype = np.int64).reshape(-1, 2)
        if adjacentFaces.shape != adjacentVertices.shape:
            raise InvalidInput('Got %d adjacent face pairs for %d edges.' % (adjacentFaces.shape[0], adjacentVertices.shape[0]))

        self.adjacentFaces = readOnly(adjacentFaces, dtype = np.int64)
        self.adjacentVertices = readOnly(adjacentVertices, dtype = np.int64)

    def __len__(self):
        return self.adjacentVertices.shape[0]
