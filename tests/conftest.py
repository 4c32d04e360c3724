"""
Test Configuration and Utilities

Common base classes and helper functions for servicebuilder tests
"""

import os
import shutil
import tempfile
import unittest

XML_CONFIG = """<?xml version="1.0" ?>
<services>
    <clients>
        <client name="michael.mock" class="fixtures.MockClient">
            <param name="username" value="michael" />
            <param name="password" value="testing123" />
            <param name="subdomain" value="michael" />
        </client>
        <client name="billy.mock" class="fixtures.MockClient">
            <param name="username" value="billy" />
            <param name="password" value="passw0rd" />
            <param name="subdomain" value="billy" />
        </client>
        <client name="billy.testing" extends="billy.mock">
            <param name="subdomain" value="test.billy" />
        </client>
    </clients>
</services>
"""

YAML_CONFIG = """services:
  michael.mock:
    class: fixtures.MockClient
    params:
      username: michael
      password: testing123
      subdomain: michael
  billy.mock:
    class: fixtures.MockClient
    params:
      username: billy
      password: passw0rd
      subdomain: billy
  billy.testing:
    extends: billy.mock
    params:
      subdomain: test.billy
"""


class ServiceBuilderTestCase(unittest.TestCase):
    """
    Base test case class for servicebuilder tests.

    Creates a temporary directory before each test and removes it
    afterwards. Use write_config() to place configuration files in it.
    """

    def setUp(self):
        self.tmpdir = tempfile.mkdtemp(prefix="servicebuilder-")

    def tearDown(self):
        shutil.rmtree(self.tmpdir, ignore_errors=True)

    def write_config(self, filename: str, content: str) -> str:
        """Write ``content`` to ``filename`` in the temp dir and return its path."""
        path = os.path.join(self.tmpdir, filename)
        with open(path, "w", encoding="utf-8") as f:
            f.write(content)
        return path

    def write_config_bytes(self, filename: str, content: bytes) -> str:
        """Write raw ``content`` to ``filename`` in the temp dir and return its path."""
        path = os.path.join(self.tmpdir, filename)
        with open(path, "wb") as f:
            f.write(content)
        return path

    def xml_config(self) -> str:
        return self.write_config("services.xml", XML_CONFIG)

    def yaml_config(self) -> str:
        return self.write_config("services.yml", YAML_CONFIG)
