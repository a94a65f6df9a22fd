"""kubedeck: a REST facade over a Kubernetes cluster."""

__version__ = "0.1.0"
