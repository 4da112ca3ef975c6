"""Operator package for network lifecycle commands.

Builds the compose environment, wraps the docker engine and compose CLI,
and exposes DockerService: versions, images, start/stop of networks and
nodes, and persistence of compose files and networks.json.
"""
