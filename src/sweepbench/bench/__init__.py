"""Measurement and regression engine for sweepbench.

Calibrates how many workload invocations make up one sample, sweeps
that count across several scales, fences out noisy samples per scale,
and fits a linear cost model to recover throughput with an error bound.
"""
