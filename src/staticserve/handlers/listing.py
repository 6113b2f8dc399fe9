"""
=============================================================================
DIRECTORY LISTING
=============================================================================

HTML index page for a directory that has no index file, when listings
are enabled:

    ┌────────────────────────────────────────────────────────────────┐
    │  Index of /docs/                                               │
    │                                                                │
    │  Name                 Size (bytes)     Last Modified           │
    │  images/              -                -                       │
    │  guide.html           5120             3 Mar 2024 09:15        │
    │  notes.txt            88               12 Jan 2024 17:02       │
    └────────────────────────────────────────────────────────────────┘

Dot entries (".git", ".env") never appear. Names are HTML-escaped in the
text and percent-encoded in the links, so a file called
"<script>.html" or "a b.txt" is displayed and linked correctly.

The page is rendered to a string BEFORE anything is written, so a
failure halfway through still becomes a clean 500 response.

=============================================================================
"""

import html
import os
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List
from urllib.parse import quote

from ..http.errors import ListingRenderError, ResourceNotFound


_MONTHS = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
           "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]


@dataclass(frozen=True)
class ListingEntry:
    name: str
    is_directory: bool
    size: int
    modified_at: float

    @property
    def display_name(self) -> str:
        return self.name + "/" if self.is_directory else self.name

    @property
    def href(self) -> str:
        return quote(self.name) + ("/" if self.is_directory else "")

    @property
    def size_text(self) -> str:
        return "-" if self.is_directory else str(self.size)

    @property
    def modified_text(self) -> str:
        """Modification time as "D Mon YYYY HH:MM" in UTC, "-" for directories."""
        if self.is_directory:
            return "-"
        return format_listing_time(self.modified_at)


def format_listing_time(mtime: float) -> str:
    """
    Format an epoch time for the listing's Last Modified column.

        >>> format_listing_time(0)
        '1 Jan 1970 00:00'
    """
    dt = datetime.fromtimestamp(mtime, tz=timezone.utc)
    return f"{dt.day} {_MONTHS[dt.month - 1]} {dt.year} {dt.hour:02d}:{dt.minute:02d}"


PAGE_TEMPLATE = """<!DOCTYPE html>
<html>
<head>
  <title>Index of {path}</title>
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <style>
    html, body, table, tr {{ width: 100%; }}
    .main {{ max-width: 992px; margin: 0 auto; }}
    h2 {{ margin-top: 5px; margin-bottom: 5px; }}
    tr {{ vertical-align: top; }}
    a {{ text-decoration: none; }}
    a:hover {{ text-decoration: underline; }}
    td.name {{ width: 60%; }}
    td.size, td.last-modified {{ width: 20%; }}
  </style>
</head>
<body>
  <div class="main">
    <h2>Index of {path}</h2>
    <table>
      <tr>
        <td class="name"><b>Name</b></td>
        <td class="size"><b>Size (bytes)</b></td>
        <td class="last-modified"><b>Last Modified</b></td>
      </tr>
{rows}
    </table>
  </div>
</body>
</html>
"""

ROW_TEMPLATE = """      <tr>
        <td class="name"><a href="{href}">{name}</a></td>
        <td class="size">{size}</td>
        <td class="last-modified">{modified}</td>
      </tr>"""


class DirectoryLister:
    """
    Builds the HTML index of one directory.

    Usage:
        page = DirectoryLister().render("/var/www/docs", "/docs/")
    """

    def entries(self, directory: str) -> List[ListingEntry]:
        """
        Read the visible entries of a directory, sorted by name.

        Raises:
            ResourceNotFound: The directory cannot be read.
        """
        try:
            with os.scandir(directory) as it:
                dir_entries = [entry for entry in it if not entry.name.startswith(".")]
        except OSError as e:
            raise ResourceNotFound(str(e)) from e

        entries = []
        for entry in dir_entries:
            try:
                st = entry.stat()
            except OSError:
                # Dangling symlink: describe the link itself
                try:
                    st = entry.stat(follow_symlinks=False)
                except OSError:
                    # Removed since the scan
                    continue
            entries.append(ListingEntry(
                name=entry.name,
                is_directory=entry.is_dir(),
                size=st.st_size,
                modified_at=st.st_mtime,
            ))

        entries.sort(key=lambda e: e.name)
        return entries

    def render(self, directory: str, url_path: str) -> str:
        """
        Render the listing page.

        Raises:
            ResourceNotFound:   The directory cannot be read.
            ListingRenderError: The page could not be produced.
        """
        entries = self.entries(directory)

        try:
            rows = "\n".join(
                ROW_TEMPLATE.format(
                    href=html.escape(entry.href),
                    name=html.escape(entry.display_name),
                    size=entry.size_text,
                    modified=entry.modified_text,
                )
                for entry in entries
            )
            return PAGE_TEMPLATE.format(path=html.escape(url_path), rows=rows)
        except Exception as e:
            raise ListingRenderError(f"Cannot render listing of {url_path!r}: {e}") from e
