"""Random record generators."""

from dbseed.generators.base import RandomRecordGenerator
from dbseed.generators.faker_generator import ColumnValueGenerator, FakerRecordGenerator

__all__ = ["ColumnValueGenerator", "FakerRecordGenerator", "RandomRecordGenerator"]
