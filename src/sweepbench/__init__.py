"""sweepbench — throughput micro-benchmarks with regression-based error bounds."""

__version__ = "0.1.0"
