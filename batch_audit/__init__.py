"""Lighthouse Batch Auditor

Modules:
- audit: device profiles, headless Chrome launcher, Lighthouse runner, per-page executor, batch runner.
- storage: local filesystem and Google Cloud Storage report backends behind one interface.
- services: task registry, batch submission, site presets, task sweeper, logging setup.
- api: FastAPI routes; main builds the app.
"""
__version__ = "1.0.0"
