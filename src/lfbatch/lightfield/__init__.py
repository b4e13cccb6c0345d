"""Light field data types and the processing steps that operate on them.

Import from the submodules directly (``lfbatch.lightfield.records``,
``lfbatch.lightfield.eslf``, ...); this package keeps no imports of its own
so the configuration schemas can use ``lfbatch.lightfield.stages`` without
pulling in the imaging stack.
"""
