"""Ingestion layer.

Adapters that turn raw spreadsheet rows into typed domain objects. Nothing
here touches the snapshot; merging is the job of :mod:`pyequip.state`.
"""

__all__: list[str] = []
