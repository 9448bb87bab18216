"""Contains a hypervisor which provisions hosts with vagrant."""

from __future__ import annotations

import os
import random
import subprocess
import tempfile
from dataclasses import dataclass
from typing import Any, Callable, Optional, Sequence

from testbed import globals as G
from testbed.hypervisors.hypervisor import Hypervisor, hypervisor
from testbed.logger import Logger
from testbed.utils import InvalidArgumentError, ProvisioningError

Runner = Callable[..., subprocess.CompletedProcess]
"""A function with the same interface as `subprocess.run`."""

def randmac() -> str:
    """
    Returns a random mac address in the VirtualBox range,
    so that guests created together don't collide.

    Returns
    -------
    str
        The mac address as 12 uppercase hex characters without separators.
    """
    return "080027" + "".join(f"{random.randrange(256):02X}" for _ in range(3))

@dataclass
class BoxDescriptor:
    """Describes a single guest in the generated Vagrantfile."""

    name: str
    """The name of the vagrant machine."""

    hostname: str
    """The hostname of the guest."""

    box: str
    """The base box image to use."""

    box_url: Optional[str]
    """The url to fetch the base box from, if it isn't available locally."""

    base_mac: str
    """The mac address of the guest's first network interface."""

    @classmethod
    def for_host(cls, name: str, config: dict[str, Any]) -> BoxDescriptor:
        """
        Creates the descriptor for the given host with a fresh random mac address.

        Raises
        ------
        InvalidArgumentError
            The host configuration has no box.
        """
        box = config.get('box')
        if not box:
            raise InvalidArgumentError(f"Host '{name}' must specify a box to be provisioned by vagrant")
        return cls(name=name, hostname=name, box=str(box), box_url=config.get('box_url'), base_mac=randmac())

def ruby_str(value: Any) -> str:
    """Renders the given value as a single-quoted ruby string literal."""
    s = str(value)
    if "\n" in s or "\r" in s:
        raise InvalidArgumentError(f"Vagrantfile values must not contain line breaks: {s!r}")
    return "'" + s.replace("\\", "\\\\").replace("'", "\\'") + "'"

G.jinja2_env.filters['ruby_str'] = ruby_str

def render_vagrantfile(boxes: Sequence[BoxDescriptor]) -> str:
    """
    Renders a Vagrantfile that defines all given boxes.

    Parameters
    ----------
    boxes
        The boxes to define.

    Returns
    -------
    str
        The content of the Vagrantfile.
    """
    return G.jinja2_env.get_template("Vagrantfile.j2").render(boxes=boxes)

@hypervisor(name='vagrant')
class Vagrant(Hypervisor):
    """
    A hypervisor that brings up all hosts with a single `vagrant up`
    and fetches the ssh configuration for each box afterwards.
    """

    user = 'vagrant'

    def __init__(self, logger: Logger, runner: Optional[Runner] = None, workdir: str = "."):
        super().__init__(logger)
        self.runner: Runner = runner if runner is not None else subprocess.run
        self.workdir = workdir

    def _vagrant(self, *args: str) -> subprocess.CompletedProcess:
        """Runs vagrant with the given arguments in the working directory and captures its output."""
        command = ["vagrant", *args]
        self.logger.debug_args("Vagrant._vagrant", {"command": command, "cwd": self.workdir})
        return self.runner(command, cwd=self.workdir, capture_output=True, text=True, check=False)

    def _checked_vagrant(self, *args: str) -> str:
        ret = self._vagrant(*args)
        if ret.returncode != 0:
            output = (ret.stdout or "") + (ret.stderr or "")
            raise ProvisioningError(f"'{' '.join(ret.args)}' failed with exit status {ret.returncode}",
                                    command=list(ret.args), returncode=ret.returncode, output=output)
        return ret.stdout or ""

    def _provision(self, host_names: list[str], host_configs: dict[str, dict[str, Any]], options: dict[str, Any]) -> None:
        self.workdir = options.get('vagrant_dir', self.workdir)

        boxes = []
        for name in host_names:
            boxes.append(BoxDescriptor.for_host(name, host_configs.get(name, {})))
            self.logger.debug(f"created Vagrantfile for VagrantHost {name}")

        with open(os.path.join(self.workdir, "Vagrantfile"), "w", encoding="utf-8") as f:
            f.write(render_vagrantfile(boxes))

        self.logger.notify(f"Bringing up vagrant boxes ({', '.join(host_names)})")
        self._checked_vagrant("up")

        self.logger.debug("construct listing of ssh-config per vagrant box name")
        for name in host_names:
            # pylint: disable=consider-using-with
            # The file must live until cleanup() releases it.
            conf = tempfile.NamedTemporaryFile("w", prefix=f"{name}-", suffix=".ssh_config", delete=False, encoding="utf-8")
            self._track_temp_file(conf)
            conf.write(self._checked_vagrant("ssh-config", name))
            conf.flush()
            self.ssh_configs[name] = conf.name

    def _destroy(self) -> None:
        self.logger.notify("Destroying vagrant boxes")
        self._checked_vagrant("destroy", "--force")
