"""
Stretch cluster networking.

Resolves routable endpoints for Kafka nodes spread over several Kubernetes
clusters by exposing each pod with a NodePort Service and addressing it
through one stable node address per cluster.
"""

__version__ = "0.1.0"
