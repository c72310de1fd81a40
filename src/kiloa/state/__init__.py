"""State/store layer.

Node rows and history samples live behind the protocols in
:mod:`kiloa.state.store`. Only :class:`kiloa.ingestion.engine.IngestionEngine`
writes to them.
"""
