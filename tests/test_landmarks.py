"""
Tests for landmark collections and the landmark mapper.
"""

import numpy as np
import pytest

from mmfit.errors import InvalidInput, UnmappedLandmark
from mmfit.landmarks import Landmark, LandmarkCollection, LandmarkMapper


class TestLandmarkCollection:

    def test_from_arrays(self):
        landmarks = LandmarkCollection.fromArrays(np.array([[1.0, 2.0], [3.0, 4.0]]), [31, 'chin'])

        assert len(landmarks) == 2
        assert landmarks.names == ['31', 'chin']
        assert 31 in landmarks
        assert np.allclose(landmarks.get('chin'), [3.0, 4.0])
        assert landmarks.get('nose') is None
        first = next(iter(landmarks))
        assert isinstance(first, Landmark)
        assert first.name == '31'
        assert np.allclose(first.coordinates, [1.0, 2.0])

    def test_count_mismatch(self):
        with pytest.raises(InvalidInput):
            LandmarkCollection.fromArrays(np.zeros((2, 2)), ['1'])

    def test_duplicate_ids(self):
        with pytest.raises(InvalidInput):
            LandmarkCollection([('1', (0.0, 0.0)), ('1', (1.0, 1.0))])


class TestLandmarkMapper:

    def test_identity(self):
        mapper = LandmarkMapper()

        assert mapper.is_identity()
        assert mapper.convert('17') == 17
        assert '17' in mapper
        assert 'nose' not in mapper
        with pytest.raises(UnmappedLandmark):
            mapper.convert('nose')
        with pytest.raises(UnmappedLandmark):
            mapper.convert('-3')

    def test_table(self):
        mapper = LandmarkMapper({'30': 114, 31: 270})

        assert not mapper.is_identity()
        assert len(mapper) == 2
        assert mapper.convert(30) == 114
        assert mapper.convert('31') == 270
        with pytest.raises(UnmappedLandmark):
            mapper.convert('32')

    def test_unmapped_is_a_key_error(self):
        with pytest.raises(KeyError):
            LandmarkMapper({}).convert('1')

    def test_message_is_not_quoted(self):
        with pytest.raises(UnmappedLandmark) as excinfo:
            LandmarkMapper({}).convert('1')
        assert str(excinfo.value).startswith('No vertex mapping')

    def test_negative_vertex_index(self):
        with pytest.raises(InvalidInput):
            LandmarkMapper({'1': -5})

    def test_load(self, tmp_path):
        fName = tmp_path / 'ibug_to_model.yaml'
        fName.write_text('landmark_mappings:\n  30: 114\n  "31": 270\n')

        mapper = LandmarkMapper.load(fName)

        assert mapper.convert('30') == 114
        assert mapper.convert('31') == 270
