"""DeviceService: device information, properties, location and enrollment."""

from __future__ import annotations

from typing import Any

from plugrest.services.base import BaseService, compact
from plugrest.services.result import ServiceResult


class DeviceService(BaseService):
    """Device operations.

    ``of`` selects another device; when omitted the client's own plug-id
    is used.
    """

    # --- Information ---

    def show(self, of: str | None = None) -> ServiceResult:
        return self._run("get_device", lambda: self._client.get_device(compact(of=of)))

    def update(
        self,
        *,
        of: str | None = None,
        name: str | None = None,
        status: str | None = None,
        perm: dict[str, Any] | None = None,
    ) -> ServiceResult:
        params = compact(of=of, name=name, status=status, perm=perm)
        return self._run("set_device", lambda: self._client.set_device(params))

    # --- Properties ---

    def get_prop(self, key: str, *, of: str | None = None) -> ServiceResult:
        params = {"key": key, **compact(of=of)}
        return self._run("get_device_prop", lambda: self._client.get_device_prop(params))

    def set_prop(self, key: str, value: Any, *, of: str | None = None) -> ServiceResult:
        params = {"key": key, "value": value, **compact(of=of)}
        return self._run("set_device_prop", lambda: self._client.set_device_prop(params))

    def remove_prop(self, key: str, *, of: str | None = None) -> ServiceResult:
        params = {"key": key, **compact(of=of)}
        return self._run(
            "remove_device_prop", lambda: self._client.remove_device_prop(params)
        )

    # --- Location ---

    def get_location(self, *, of: str | None = None) -> ServiceResult:
        return self._run(
            "get_device_location",
            lambda: self._client.get_device_location(compact(of=of)),
        )

    def set_location(
        self,
        x: float,
        y: float,
        *,
        r: float | None = None,
        z: float | None = None,
        t: Any = None,
        of: str | None = None,
    ) -> ServiceResult:
        """Store the device position (``x`` longitude, ``y`` latitude)."""
        params = {"x": x, "y": y, **compact(r=r, z=z, t=t, of=of)}
        return self._run(
            "set_device_location", lambda: self._client.set_device_location(params)
        )

    # --- Enrollment ---

    def enroll_prototype(
        self,
        name: str,
        *,
        hwid: str | None = None,
        password: str | None = None,
        props: dict[str, Any] | None = None,
    ) -> ServiceResult:
        params = {"name": name, **compact(hwid=hwid, props=props)}
        if password is not None:
            params["pass"] = password
        return self._run("enroll_prototype", lambda: self._client.enroll_prototype(params))

    def enroll_product(self, model: str, hwid: str, password: str) -> ServiceResult:
        """Enroll a production device; the client adopts the returned identity."""
        params = {"model": model, "hwid": hwid, "pass": password}
        result = self._run("enroll_product", lambda: self._client.enroll_product(params))
        return self._with_identity(result)

    def control(
        self,
        model: str,
        ctrl: str,
        password: str,
        *,
        hwid: str | None = None,
        name: str | None = None,
        enroll: bool = False,
    ) -> ServiceResult:
        """Take control of device *ctrl*.

        With *enroll*, this client registers as a brand new controller and
        the call fails when it already holds a plug-id.
        """
        params = {"model": model, "ctrl": ctrl, "pass": password, **compact(hwid=hwid, name=name)}
        if enroll:
            op, call = "enroll_controller", self._client.enroll_controller
        else:
            op, call = "control_device", self._client.control_device
        return self._with_identity(self._run(op, lambda: call(params)))

    def uncontrol(self, controlled: str | list[str], *, of: str | None = None) -> ServiceResult:
        params = {"controlled": controlled, **compact(of=of)}
        return self._run("uncontrol_device", lambda: self._client.uncontrol_device(params))

    def unenroll(self, of: str | list[str] | None = None) -> ServiceResult:
        return self._run("unenroll", lambda: self._client.unenroll(compact(of=of)))

    def _with_identity(self, result: ServiceResult) -> ServiceResult:
        """Add the identity the client holds after an enrollment."""
        body = result.data.get("result")
        if not result.ok or not isinstance(body, dict) or not body.get("id"):
            return result
        auth = self._client.get_auth()
        if auth is None:
            return result
        return result.model_copy(update={"data": {**result.data, "id": auth["id"]}})
