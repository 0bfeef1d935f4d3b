"""Core synchronization machinery.

Modules
-------
history
    Bounded, deduplicated per-build-type build history.
suppression
    Time-windowed failure counts for per-build detail fetches.
registry
    Project and build-type catalogs with monitored subsets.
notifier
    Change publication to subscribers, grouped by change kind.
workers
    Shared worker pool and future composition helpers.
engine
    The ``SynchronizationEngine`` and its refresh operations.
scheduler
    Interval-driven polling on top of the engine.
"""
