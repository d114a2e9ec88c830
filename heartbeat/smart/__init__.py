"""SMART self-test analysis."""

from .selftest import DiskAges, SelfTestRecord, ThresholdBreach, analyze, parse_selftest_log
