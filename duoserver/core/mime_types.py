"""
Extension to MIME type table used for the Content-Type response header.

The table is fixed at import time and never modified afterwards, so handler
threads can read it without locking.
"""

from pathlib import PurePath
from types import MappingProxyType
from typing import Mapping, Optional

DEFAULT_MIME_TYPE = "application/octet-stream"

MIME_TYPE_MAPPINGS = MappingProxyType({
    ".asf": "video/x-ms-asf",
    ".asx": "video/x-ms-asf",
    ".avi": "video/x-msvideo",
    ".bin": "application/octet-stream",
    ".cco": "application/x-cocoa",
    ".crt": "application/x-x509-ca-cert",
    ".css": "text/css",
    ".deb": "application/octet-stream",
    ".der": "application/x-x509-ca-cert",
    ".dll": "application/octet-stream",
    ".dmg": "application/octet-stream",
    ".ear": "application/java-archive",
    ".eot": "application/octet-stream",
    ".exe": "application/octet-stream",
    ".flv": "video/x-flv",
    ".gif": "image/gif",
    ".hqx": "application/mac-binhex40",
    ".htc": "text/x-component",
    ".htm": "text/html",
    ".html": "text/html",
    ".ico": "image/x-icon",
    ".img": "application/octet-stream",
    ".iso": "application/octet-stream",
    ".jar": "application/java-archive",
    ".jardiff": "application/x-java-archive-diff",
    ".jng": "image/x-jng",
    ".jnlp": "application/x-java-jnlp-file",
    ".jpeg": "image/jpeg",
    ".jpg": "image/jpeg",
    ".js": "application/x-javascript",
    ".mml": "text/mathml",
    ".mng": "video/x-mng",
    ".mov": "video/quicktime",
    ".mp3": "audio/mpeg",
    ".mpeg": "video/mpeg",
    ".mpg": "video/mpeg",
    ".msi": "application/octet-stream",
    ".msm": "application/octet-stream",
    ".msp": "application/octet-stream",
    ".pdb": "application/x-pilot",
    ".pdf": "application/pdf",
    ".pem": "application/x-x509-ca-cert",
    ".pl": "application/x-perl",
    ".pm": "application/x-perl",
    ".png": "image/png",
    ".prc": "application/x-pilot",
    ".ra": "audio/x-realaudio",
    ".rar": "application/x-rar-compressed",
    ".rpm": "application/x-redhat-package-manager",
    ".rss": "text/xml",
    ".run": "application/x-makeself",
    ".sea": "application/x-sea",
    ".shtml": "text/html",
    ".sit": "application/x-stuffit",
    ".swf": "application/x-shockwave-flash",
    ".tcl": "application/x-tcl",
    ".tk": "application/x-tcl",
    ".txt": "text/plain",
    ".war": "application/java-archive",
    ".wbmp": "image/vnd.wap.wbmp",
    ".wmv": "video/x-ms-wmv",
    ".xml": "text/xml",
    ".xpi": "application/x-xpinstall",
    ".zip": "application/zip",
})


class MimeTable:
    """Case-insensitive, read-only extension lookup."""

    def __init__(self, mappings: Optional[Mapping[str, str]] = None, default: str = DEFAULT_MIME_TYPE):
        source = MIME_TYPE_MAPPINGS if mappings is None else mappings
        self._mappings = MappingProxyType({ext.lower(): mime for ext, mime in source.items()})
        self.default = default

    def __contains__(self, extension: str) -> bool:
        return extension.lower() in self._mappings

    def __len__(self) -> int:
        return len(self._mappings)

    def lookup(self, path) -> str:
        """
        Return the MIME type for a file path or a bare extension.

        Args:
            path: file name/path (``report.PDF``) or extension (``.pdf``)

        Returns:
            The mapped type, or the default for unknown/missing extensions
        """
        name = str(path)
        if name.startswith(".") and "/" not in name and name.count(".") == 1:
            extension = name
        else:
            extension = PurePath(name).suffix
        return self._mappings.get(extension.lower(), self.default)


mime_table = MimeTable()
