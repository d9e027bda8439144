"""Service Discovery Observer (SDO).

Host-resident agent core that:
 - watches the docker engine for container lifecycle changes
 - turns each running container's ports into service endpoints
 - applies per-port monitor configuration taken from container labels
 - reports only real endpoint additions/removals to a consumer

Metric collection and discovery-rule matching live outside this package.
"""
