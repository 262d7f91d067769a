# Instrumentation Package
from instrumentation.dbapi import InstrumentedConnection, InstrumentedCursor

__all__ = ["InstrumentedConnection", "InstrumentedCursor"]
