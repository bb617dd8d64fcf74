"""Core signal engine: indicators, features, neural model, rules and evaluation.

This package contains pure business logic with no I/O dependencies
(no HTTP, Redis, or filesystem access). Collaborators are described in
``core.protocols`` and supplied by the app layer.
"""
