"""
Test suite for the CI runner.

This package contains:
- unit/: registries, docker wrapper, load-test plan and each performance
  lifecycle hook, with docker faked
- integration/: the whole job lifecycle and the CLI against a recording
  docker client
"""
