"""Output formatters for flink-results."""

from flink_results.formatters.base import Formatter, FormatterRegistry, cell_text, registry
from flink_results.formatters.csv import CSVFormatter
from flink_results.formatters.json import JSONFormatter
from flink_results.formatters.table import TableFormatter
