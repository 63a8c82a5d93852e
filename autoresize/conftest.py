import responses
import structlog
from autoresize.config import Config
from autoresize.volumes import Volume, VolumeAPI
from pytest import fixture

API_URL = "https://api.digitalocean.com"


@fixture
def logger():
    return structlog.get_logger()


@fixture
def mocked_responses():
    with responses.RequestsMock() as rsps:
        yield rsps


@fixture
def config():
    return Config(
        token="secret-token",
        device="/mnt/data",
        volume="data",
        region="fra1",
        buffer=10,
        poll_interval=0,
        poll_timeout=60,
        max_polls=10,
    )


@fixture
def volume():
    return Volume(id="v1", name="data", region="fra1", size=100)


@fixture
def api(logger):
    return VolumeAPI("secret-token", API_URL, log=logger)
