"""Library layer shared by the CLI front end.

``core`` holds pure configuration and catalog logic, ``containers`` wraps the
container engine, and ``orchestration`` sequences both into a build run.
"""
