"""Build pipeline -- conditional stages, packager and orchestrator.

Re-exports the entry points used by the ``build`` command:

* :func:`run_build` -- inspect, compile, package and optionally install.
* :func:`create_package` -- pack an already-compiled tree.
"""

from gnext.pipeline.orchestrator import install_tail, run_build, run_stages
from gnext.pipeline.packager import create_package

__all__ = ["create_package", "install_tail", "run_build", "run_stages"]
