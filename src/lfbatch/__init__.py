"""`lfbatch` - incremental batch decoding of lenslet light field images.

Subpackages:
- schemas: Layered configuration (param < user < CLI)
- lightfield: Records, stages, ESLF layout, colour, calibration lookup
- pipeline: Orchestrator, completion tracking, execution, persistence
- visualization: Thumbnail previews
- cli: Command-line entry point
"""

__version__ = "0.1.0"
