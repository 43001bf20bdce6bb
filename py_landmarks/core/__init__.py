"""
Core landmark generation functionality.
"""

from .traits import Point, Comparison, Sign, GeometryTraits, CartesianTraits
from .events import EventKind, BatchReason, LocalEditKind, EditEvent, ChangeListener
from .errors import LandmarkError, PreconditionViolation, GeneratorNotBuiltError, DegenerateGridError
from .point_location import Feature, FeatureKind, batched_locate
from .subdivision import ObservableSubdivision
from .voronoi_arrangement import VoronoiArrangement, Vertex, Edge, arrangement_from_points
from .grid_sampler import GridParameters, sample_grid, grid_resolution
from .landmark_store import LandmarkEntry, LandmarkStore
from .nearest_landmark import landmark_index
from .grid_generator import GridLandmarkGenerator, NotificationState

__all__ = ['Point', 'Comparison', 'Sign', 'GeometryTraits', 'CartesianTraits',
           'EventKind', 'BatchReason', 'LocalEditKind', 'EditEvent', 'ChangeListener',
           'LandmarkError', 'PreconditionViolation', 'GeneratorNotBuiltError', 'DegenerateGridError',
           'Feature', 'FeatureKind', 'batched_locate',
           'ObservableSubdivision', 'VoronoiArrangement', 'Vertex', 'Edge', 'arrangement_from_points',
           'GridParameters', 'sample_grid', 'grid_resolution',
           'LandmarkEntry', 'LandmarkStore', 'landmark_index',
           'GridLandmarkGenerator', 'NotificationState']
