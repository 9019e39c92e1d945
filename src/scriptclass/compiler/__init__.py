"""
Compiler Package.

Front-end (script parsing), static type check, source rendering, backend and
loader, and the pipeline that drives them phase by phase.

Import the pipeline from ``scriptclass.compiler.pipeline`` (or the package
root); this module does not re-export it so that passes can depend on
``scriptclass.compiler.source`` without importing the whole pipeline.
"""
