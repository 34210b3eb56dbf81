"""Pipeline stages: spatial index, clustering, aggregation, flagging.

Each stage exposes a small, pure function API and works on the merged,
immutable container-record snapshot of a single run.
"""
