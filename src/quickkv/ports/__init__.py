"""Ports - interfaces between the store and its collaborators."""
