"""Client for the block storage part of the DigitalOcean v2 API.

Only the three calls needed to grow a volume are implemented. Requests are
never retried: a failed run is repeated by the next scheduled invocation.
"""

from typing import NamedTuple
from urllib.parse import urlsplit

import requests
import structlog
from autoresize.errors import (
    AmbiguousVolume,
    InvalidResize,
    RemoteError,
    VolumeNotFound,
)

_log = structlog.get_logger()

DEFAULT_API_URL = "https://api.digitalocean.com"
DEFAULT_REQUEST_TIMEOUT = 30
PER_PAGE = 200

ACTION_COMPLETED = "completed"
ACTION_ERRORED = "errored"
ACTION_IN_PROGRESS = "in-progress"


class Volume(NamedTuple):
    id: str
    name: str
    region: str
    size: int


class Action(NamedTuple):
    id: int
    status: str


class VolumeAPI:
    def __init__(
        self,
        token,
        api_url=DEFAULT_API_URL,
        timeout=DEFAULT_REQUEST_TIMEOUT,
        log=_log,
    ):
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self.log = log
        self.session = requests.Session()
        self.session.headers.update(
            {
                "Authorization": f"Bearer {token}",
                "Accept": "application/json",
                "Content-Type": "application/json",
            }
        )

    def __repr__(self):
        """Don't show the token."""
        return f"<VolumeAPI {self.api_url}>"

    def _absolute(self, url):
        if url.startswith(("http://", "https://")):
            return url
        return self.api_url + url

    def _same_origin(self, url):
        ours = urlsplit(self.api_url)
        theirs = urlsplit(url)
        return (theirs.scheme, theirs.netloc) == (ours.scheme, ours.netloc)

    def _request(self, method, url, **kw):
        url = self._absolute(url)
        self.log.debug("api-request", method=method, url=url)
        try:
            response = self.session.request(
                method, url, timeout=self.timeout, **kw
            )
        except requests.RequestException as e:
            raise RemoteError(None, str(e))

        if not response.ok:
            raise RemoteError(response.status_code, response.text)

        try:
            data = response.json()
        except ValueError:
            raise RemoteError(
                response.status_code,
                response.text,
                msg="API response is not valid JSON",
            )

        if not isinstance(data, dict):
            raise RemoteError(
                response.status_code,
                response.text,
                msg="API response is not a JSON object",
            )
        return data

    def _expect(self, data, key):
        try:
            return data[key]
        except KeyError:
            raise RemoteError(
                200, data, msg=f"API response lacks the '{key}' key"
            )

    def _volume(self, data, region):
        try:
            volume_region = data.get("region", region)
            if isinstance(volume_region, dict):
                volume_region = volume_region["slug"]
            return Volume(
                id=data["id"],
                name=data["name"],
                region=volume_region,
                size=int(data["size_gigabytes"]),
            )
        except (KeyError, TypeError, ValueError):
            raise RemoteError(200, data, msg="malformed volume in response")

    def _action(self, data):
        action = self._expect(data, "action")
        try:
            return Action(id=action["id"], status=action["status"])
        except (KeyError, TypeError):
            raise RemoteError(200, data, msg="malformed action in response")

    def find_volume(self, region, name) -> Volume:
        """Returns the only volume called `name` in `region`.

        The API filters by region only, matching the name happens here.
        Raises VolumeNotFound if there is no such volume and
        AmbiguousVolume if more than one volume has that name.
        """
        candidates = []
        fetched = set()
        url = self._absolute("/v2/volumes")
        params = {"region": region, "per_page": PER_PAGE}
        while url:
            fetched.add(url)
            data = self._request("GET", url, params=params)
            page = self._expect(data, "volumes")
            if not isinstance(page, list):
                raise RemoteError(200, data, msg="'volumes' is not a list")
            candidates.extend(page)
            # The next link already carries all query parameters.
            pages = (data.get("links") or {}).get("pages") or {}
            url = pages.get("next")
            params = None
            if not url:
                break
            if not self._same_origin(url):
                raise RemoteError(
                    200,
                    data,
                    msg=f"refusing to follow pagination link to {url}, "
                    f"it leaves {self.api_url}",
                )
            if url in fetched:
                self.log.warning("find-volume-pagination-loop", url=url)
                break

        matches = [
            v
            for v in candidates
            if isinstance(v, dict) and v.get("name") == name
        ]
        self.log.debug(
            "find-volume",
            region=region,
            name=name,
            candidates=len(candidates),
            matches=len(matches),
        )
        if not matches:
            raise VolumeNotFound(
                f"no volume named '{name}' found in region {region}"
            )
        if len(matches) > 1:
            raise AmbiguousVolume(
                f"{len(matches)} volumes named '{name}' found in region "
                f"{region}, refusing to guess"
            )
        return self._volume(matches[0], region)

    def resize_volume(self, volume: Volume, size: int) -> Action:
        """Requests growing `volume` to `size` GB.

        Volumes can't shrink, so sizes not larger than the current one are
        rejected before talking to the API.
        """
        if size <= volume.size:
            raise InvalidResize(
                f"refusing to resize volume '{volume.name}' from "
                f"{volume.size} GB to {size} GB, volumes can only grow"
            )
        data = self._request(
            "POST",
            f"/v2/volumes/{volume.id}/actions",
            json={"type": "resize", "size_gigabytes": size},
        )
        action = self._action(data)
        self.log.debug(
            "resize-volume-requested",
            volume_id=volume.id,
            size=size,
            action_id=action.id,
            status=action.status,
        )
        return action

    def poll_action(self, action_id) -> str:
        data = self._request("GET", f"/v2/actions/{action_id}")
        status = self._action_status(data)
        self.log.debug("poll-action", action_id=action_id, status=status)
        return status

    def _action_status(self, data):
        action = self._expect(data, "action")
        try:
            return action["status"]
        except (KeyError, TypeError):
            raise RemoteError(200, data, msg="action in response lacks status")
