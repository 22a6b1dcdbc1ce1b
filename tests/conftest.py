"""Shared fixtures: data models, a seed document, store and database."""
import logging

import pytest

from confdb.backend import BackendStore
from confdb.context import DatabaseContext
from confdb.database import Database
from confdb.datamodel import ModelRegistry

MODELS = {
    "network.interface.yaml": """
id: network.interface
title: Network interface
queryinfo:
  xpath: /config/network/interfaces/interface
  iterable: true
  idproperty: uuid
  refproperty: interfaceref
properties:
  uuid:
    type: string
  name:
    type: string
  mtu:
    type: integer
    default: 1500
  enable:
    type: boolean
    default: true
  comment:
    type: string
""",
    "system.time.yaml": """
id: system.time
queryinfo:
  xpath: /config/system/time
properties:
  timezone:
    type: string
    default: UTC
  ntp:
    type: object
    properties:
      enable:
        type: boolean
      servers:
        type: array
        items:
          type: string
""",
    "storage.sharedfolder.yaml": """
id: storage.sharedfolder
queryinfo:
  xpath: /config/storage/sharedfolders/sharedfolder
  iterable: true
  refproperty: sharedfolderref
properties:
  uuid:
    type: string
  name:
    type: string
  reldirpath:
    type: string
""",
    "service.smb.share.yaml": """
id: service.smb.share
queryinfo:
  xpath: /config/services/smb/shares/share
  iterable: true
properties:
  uuid:
    type: string
  sharedfolderref:
    type: string
  comment:
    type: string
  readonly:
    type: boolean
""",
    "service.ssh.yaml": """
id: service.ssh
queryinfo:
  xpath: /config/services/ssh
properties:
  enable:
    type: boolean
  port:
    type: integer
    default: 22
""",
}

SEED_DOCUMENT = """
config:
  system:
    time:
      timezone: Europe/Berlin
      ntp:
        enable: true
        servers:
          - pool.ntp.org
  network:
    interfaces: {}
  storage:
    sharedfolders: {}
  services:
    smb:
      shares: {}
    ssh:
      enable: false
      port: 22
"""


@pytest.fixture
def models_dir(tmp_path):
    """Directory with the test data model definitions."""
    path = tmp_path / "datamodels"
    path.mkdir()
    for name, content in MODELS.items():
        (path / name).write_text(content)
    return path


@pytest.fixture
def registry(models_dir):
    return ModelRegistry(models_dir)


@pytest.fixture
def document_path(tmp_path):
    """A seed configuration document."""
    path = tmp_path / "config.yaml"
    path.write_text(SEED_DOCUMENT)
    return path


@pytest.fixture
def store(document_path):
    store = BackendStore(document_path, lock_timeout=1)
    store.load()
    return store


@pytest.fixture
def db(store, registry):
    return Database(store, registry)


@pytest.fixture(autouse=True)
def reset_context():
    """Never leak the process-wide database between tests."""
    DatabaseContext.reset()
    yield
    DatabaseContext.reset()


@pytest.fixture(autouse=True)
def restore_loggers():
    """Undo handler changes made by the logging setup functions."""
    loggers = [logging.getLogger(name) for name in ("confdb", "confdb.perf", "confdb.audit")]
    saved = [(lg, lg.handlers[:], lg.level, lg.propagate) for lg in loggers]
    yield
    for lg, handlers, level, propagate in saved:
        for handler in lg.handlers[:]:
            if handler not in handlers:
                lg.removeHandler(handler)
                handler.close()
        for handler in handlers:
            lg.addHandler(handler)
        lg.setLevel(level)
        lg.propagate = propagate
