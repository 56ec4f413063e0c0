"""State/store layer.

The path store is the single source of truth for client-visible
application state. UI controllers read and mutate it by dot path (or by
the typed lenses in :mod:`readerstore.state.schema`) and react to changes
through subscriptions.
"""
