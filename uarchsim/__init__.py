"""Trace formats, trace readers, virtual memory, statistics printing and a CVP trace converter for microarchitecture simulation."""

__version__ = "0.1.0"