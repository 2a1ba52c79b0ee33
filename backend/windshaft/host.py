from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from windshaft.config import maps_api_base_url

# Plain http can spread tile requests over several sub-origins; https is served
# from a single origin.
HTTP_SUBDOMAINS = ("0", "1", "2", "3")
HTTPS_SUBDOMAINS = ("",)


@dataclass(frozen=True)
class HostResolver:
    """
    Maps account / URL template / CDN metadata to the tile-serving host.

    `url_template` carries a `{user}` placeholder, e.g. `https://{user}.carto.com`.
    `cdn_url` is the per-protocol host map returned by the Maps API, e.g.
    `{"http": "cdb.com", "https": "cdb-ssl.com"}`.
    """

    user_name: str
    url_template: str
    cdn_url: dict[str, str] | None = field(default=None, compare=False)

    def use_https(self) -> bool:
        # Textual check on the template, not on any resolved CDN host.
        return self.url_template.startswith("https")

    @property
    def protocol(self) -> str:
        return "https" if self.use_https() else "http"

    def supported_subdomains(self) -> list[str]:
        if not self.use_https():
            return list(HTTP_SUBDOMAINS)
        return list(HTTPS_SUBDOMAINS)

    def host(self, subhost: str | None = None) -> str:
        protocol = self.protocol
        cdn_host = (self.cdn_url or {}).get(protocol)
        if cdn_host:
            prefix = f"{subhost}." if subhost else ""
            return f"{protocol}://{prefix}{cdn_host}/{self.user_name}"
        return self.url_template.replace("{user}", self.user_name)

    def instantiation_url(self) -> str:
        """
        Endpoint map definitions are POSTed to. Never goes through the CDN.
        """
        return "/".join([self.url_template.replace("{user}", self.user_name), maps_api_base_url()])

    def base_url(self, layergroupid: str, subhost: str | None = None) -> str:
        return "/".join([self.host(subhost), maps_api_base_url(), str(layergroupid)])

    def tile_url_templates(
        self,
        layergroupid: str,
        layer_indexes: Iterable[int],
        *,
        fmt: str = "png",
    ) -> list[str]:
        """
        One `{z}/{x}/{y}` tile template per supported subdomain.
        """
        indexes = ",".join(str(i) for i in layer_indexes)
        out: list[str] = []
        for subhost in self.supported_subdomains():
            base = self.base_url(layergroupid, subhost or None)
            if indexes:
                out.append(f"{base}/{indexes}/{{z}}/{{x}}/{{y}}.{fmt}")
            else:
                out.append(f"{base}/{{z}}/{{x}}/{{y}}.{fmt}")
        return out
