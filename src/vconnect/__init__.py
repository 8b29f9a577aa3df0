"""vcluster connect.

Establish and keep alive client connectivity to a virtual cluster running as a workload in a host cluster.
"""

__version__ = "0.1.0"
__author__ = "Platform Engineering Team"
__license__ = "Apache-2.0"
