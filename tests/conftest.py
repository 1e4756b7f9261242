import matplotlib
matplotlib.use("Agg")

import pytest

from cnt_exciton import CNTLattice, CNTParameters, ExtendedZone, electron_K2_extended


@pytest.fixture(scope="session")
def params():
    return CNTParameters()


@pytest.fixture(scope="session")
def lat42(params):
    return CNTLattice.build(4, 2, params)


@pytest.fixture(scope="session")
def zone42(lat42):
    return ExtendedZone.build(lat42, nk=10)


@pytest.fixture(scope="session")
def bands42(lat42, zone42, params):
    return electron_K2_extended(lat42, zone42, params)
