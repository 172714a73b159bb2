"""
Tests for the iterative shape and pose fit.
"""

import logging

import numpy as np
import pytest

from mmfit.errors import FittingError, InvalidInput
from mmfit.landmarks import LandmarkMapper
from mmfit.models import Blendshape, BlendshapeSet
from mmfit.optimize.contour import ContourLandmarks, ModelContour
from mmfit.optimize.fitting import FitSettings, FitResult, fit_shape_and_pose
from mmfit.utils.transform import rotMat2angle

from conftest import OCTAHEDRON_VERTICES

WIDTH, HEIGHT = 640, 480
ANGLES = (0.1, 0.25, -0.05)


@pytest.fixture
def mean_landmarks(shape_model, project):
    """Every vertex of the mean shape as a landmark, ids are the vertex indices."""
    points = project(shape_model.get_mean().reshape(-1, 3), ANGLES, 1.8, 320.0, 250.0, HEIGHT)
    ids = [str(i) for i in range(shape_model.get_num_vertices())]
    return points, ids


def fit(model, points, ids, blendshapes = None, landmarkMapper = None, edgeTopology = None, contourLandmarks = None, modelContour = None, **settings):
    if landmarkMapper is None:
        landmarkMapper = LandmarkMapper()
    return fit_shape_and_pose(model, blendshapes, points, ids, landmarkMapper, WIDTH, HEIGHT,
                              edgeTopology, contourLandmarks, modelContour, **settings)


class TestFitShapeAndPose:
    """Test fit_shape_and_pose on landmarks made from known shapes and poses."""

    def test_mean_shape(self, morphable_model, mean_landmarks):
        """Landmarks of the mean shape give zero coefficients and the pose they were made with."""
        result = fit(morphable_model, *mean_landmarks)

        assert isinstance(result, FitResult)
        assert np.allclose(result.shapeCoefficients, 0, atol = 1e-6)
        assert result.blendshapeCoefficients.size == 0
        assert np.allclose(result.renderingParameters.get_rotation_matrix(), rotMat2angle(np.array(ANGLES)), atol = 1e-8)
        assert np.isclose(result.renderingParameters.s, 1.8)
        assert np.isclose(result.renderingParameters.tx, 320.0)
        assert np.isclose(result.renderingParameters.ty, 250.0)
        assert result.renderingParameters.screenWidth == WIDTH
        assert result.fittedContourPoints.shape == (0, 2)

    def test_mesh(self, morphable_model, mean_landmarks, shape_model):
        result = fit(morphable_model, *mean_landmarks)

        assert result.mesh.vertices.shape == (20, 3)
        assert np.allclose(result.mesh.vertices.flatten(), shape_model.get_mean(), atol = 1e-6)
        assert np.array_equal(result.mesh.tvi, shape_model.get_triangle_list())

    def test_recovers_shape(self, morphable_model, shape_model, project):
        c = np.array([1.0, -0.5, 0.8, 2.0])
        points = project(shape_model.draw_sample(c).reshape(-1, 3), ANGLES, 1.8, 320.0, 250.0, HEIGHT)
        ids = [str(i) for i in range(20)]

        result = fit(morphable_model, points, ids, lamb = 1e-6, numIterations = 20)

        assert np.allclose(result.shapeCoefficients, c, atol = 1e-2)
        assert np.isclose(result.renderingParameters.s, 1.8, atol = 1e-3)

    def test_deterministic(self, morphable_model, mean_landmarks, rng):
        points, ids = mean_landmarks
        noisy = points + rng.randn(*points.shape)

        first = fit(morphable_model, noisy, ids)
        second = fit(morphable_model, noisy, ids)

        assert np.array_equal(first.shapeCoefficients, second.shapeCoefficients)
        assert np.array_equal(first.renderingParameters.get_rotation(), second.renderingParameters.get_rotation())

    def test_number_of_coefficients(self, morphable_model, mean_landmarks):
        result = fit(morphable_model, *mean_landmarks, numShapeCoefficientsToFit = 2)
        assert result.shapeCoefficients.shape == (2,)

    def test_blendshapes(self, morphable_model, shape_model, project, rng):
        blendshapes = BlendshapeSet([Blendshape('smile', rng.randn(60) * 5)])
        expression = shape_model.get_mean() + blendshapes.get_deformation([0.6])
        points = project(expression.reshape(-1, 3), ANGLES, 1.8, 320.0, 250.0, HEIGHT)

        result = fit(morphable_model, points, [str(i) for i in range(20)], blendshapes = blendshapes)

        assert result.blendshapeCoefficients.shape == (1,)
        assert result.blendshapeCoefficients[0] > 0.3

    def test_mapper_skips_unmapped_landmarks(self, morphable_model, mean_landmarks, caplog):
        points, _ = mean_landmarks
        ids = ['p%d' % i for i in range(20)]
        mapper = LandmarkMapper({'p%d' % i: i for i in range(10)})

        with caplog.at_level(logging.DEBUG, logger = 'mmfit'):
            result = fit(morphable_model, points, ids, landmarkMapper = mapper)

        assert np.isclose(result.renderingParameters.s, 1.8)
        assert 'p15' in caplog.text

    def test_contour_and_occluding_edges(self, octahedron_model, octahedron_topology, project):
        """Contour landmarks on the outline of a turned octahedron are matched to the contour and to the occluding boundary."""
        angles = (0.0, 0.3, 0.0)
        points = project(50 * OCTAHEDRON_VERTICES, angles, 1.5, 320.0, 240.0, HEIGHT)
        # +x and -x are contour landmarks, the others are fixed
        ids = ['r', '1', 'l', '3', '4', '5']
        contourLandmarks = ContourLandmarks(rightContour = ['r'], leftContour = ['l'])
        modelContour = ModelContour(rightContour = [0], leftContour = [2])

        result = fit(octahedron_model, points, ids, edgeTopology = octahedron_topology,
                     contourLandmarks = contourLandmarks, modelContour = modelContour)

        # The left contour landmark, then the right one matched to the occluding boundary in place of its model contour vertex
        assert result.fittedContourPoints.shape == (2, 2)
        assert np.allclose(result.fittedContourPoints[0], points[2])
        assert np.allclose(result.fittedContourPoints[1], points[0])
        assert np.allclose(result.renderingParameters.get_rotation_euler_angles(), angles, atol = 1e-6)
        assert np.allclose(result.shapeCoefficients, 0, atol = 1e-6)

    @pytest.mark.parametrize('numFixed, candidates', [(19, [0, 1, 2]), (3, [0])])
    def test_rolled_face_with_contour_landmark(self, morphable_model, shape_model, project, numFixed, candidates):
        """A face rolled past 90 degrees is fitted with a contour landmark, from many fixed landmarks or from only three."""
        angles = (0.0, 0.2, 2 * np.pi / 3)
        points = project(shape_model.get_mean().reshape(-1, 3), angles, 1.8, 320.0, 250.0, HEIGHT)
        # Vertex 0 is the contour landmark
        ids = ['c'] + [str(i) for i in range(1, 20)]
        keep = np.arange(numFixed + 1)
        contourLandmarks = ContourLandmarks(rightContour = ['c'])

        result = fit(morphable_model, np.ascontiguousarray(points[keep]), [ids[i] for i in keep],
                     contourLandmarks = contourLandmarks, modelContour = ModelContour(candidates))

        assert np.allclose(result.renderingParameters.get_rotation_matrix(), rotMat2angle(np.array(angles)), atol = 1e-6)
        assert np.isclose(result.renderingParameters.s, 1.8)
        assert np.allclose(result.shapeCoefficients, 0, atol = 1e-6)
        assert np.allclose(result.fittedContourPoints, points[[0]])

    def test_regularization_shrinks_coefficients(self, morphable_model, shape_model, project, rng):
        """A larger lamb never gives larger shape coefficients on noisy landmarks."""
        c = np.array([1.0, -0.5, 0.8, 2.0])
        points = project(shape_model.draw_sample(c).reshape(-1, 3), ANGLES, 1.8, 320.0, 250.0, HEIGHT)
        noisy = points + 3 * rng.randn(*points.shape)
        ids = [str(i) for i in range(20)]
        lambs = [0.1, 1.0, 10.0, 100.0, 1000.0]

        # With one iteration the pose does not depend on lamb
        norms = [np.linalg.norm(fit(morphable_model, noisy, ids, numIterations = 1, lamb = lamb).shapeCoefficients) for lamb in lambs]
        assert np.all(np.diff(norms) <= 1e-12)
        assert norms[-1] < norms[0]

        weak = fit(morphable_model, noisy, ids, lamb = 1.0)
        strong = fit(morphable_model, noisy, ids, lamb = 1e4)
        assert np.linalg.norm(strong.shapeCoefficients) < np.linalg.norm(weak.shapeCoefficients)


class TestFitErrors:
    """Test input validation and error reporting."""

    def test_empty_landmarks(self, morphable_model):
        with pytest.raises(InvalidInput):
            fit(morphable_model, np.zeros((0, 2)), [])

    def test_id_count_mismatch(self, morphable_model, mean_landmarks):
        points, ids = mean_landmarks
        with pytest.raises(InvalidInput):
            fit(morphable_model, points, ids[:-1])

    def test_too_few_correspondences(self, morphable_model, mean_landmarks):
        """The error reports the iteration it happened in."""
        points, ids = mean_landmarks
        with pytest.raises(InvalidInput) as excinfo:
            fit(morphable_model, np.ascontiguousarray(points[:3]), ids[:3])

        assert excinfo.value.iteration == 0
        assert 'iteration 0' in str(excinfo.value)

    def test_bad_model_contour(self, morphable_model, mean_landmarks):
        points, ids = mean_landmarks
        contourLandmarks = ContourLandmarks(rightContour = ['0'])

        with pytest.raises(FittingError) as excinfo:
            fit(morphable_model, points, ids, contourLandmarks = contourLandmarks, modelContour = ModelContour([99]))

        assert excinfo.value.iteration == 0

    def test_blendshape_size_mismatch(self, morphable_model, mean_landmarks):
        blendshapes = BlendshapeSet([Blendshape('smile', np.zeros(9))])
        with pytest.raises(InvalidInput):
            fit(morphable_model, *mean_landmarks, blendshapes = blendshapes)

    def test_invalid_settings(self, morphable_model, mean_landmarks):
        with pytest.raises(InvalidInput):
            fit(morphable_model, *mean_landmarks, numIterations = 0)
        with pytest.raises(InvalidInput):
            fit(morphable_model, *mean_landmarks, lamb = -1.0)
        with pytest.raises(InvalidInput):
            fit(morphable_model, *mean_landmarks, numShapeCoefficientsToFit = 7)


class TestFitSettings:

    def test_defaults(self):
        settings = FitSettings()
        assert settings.numIterations == 5
        assert settings.numShapeCoefficientsToFit is None
        assert settings.lamb == 30.0

    def test_frozen(self):
        with pytest.raises(AttributeError):
            FitSettings().lamb = 1.0
