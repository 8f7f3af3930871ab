"""
Bundler manifest models

Mirrors the entries of Vite's ``.vite/manifest.json``:

    {
      "main.ts": {
        "file": "assets/main-4f2a.js",
        "src": "main.ts",
        "isEntry": true,
        "css": ["assets/main-9b1c.css"]
      }
    }
"""

from typing import Dict, List

from pydantic import BaseModel, ConfigDict, Field, RootModel


class ManifestEntry(BaseModel):
    """One source asset and the files the bundler emitted for it"""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    file: str = Field(description="Emitted output file, relative to the dist root")
    src: str = Field(default="", description="Source path the entry was built from")
    is_entry: bool = Field(default=False, alias="isEntry")
    css: List[str] = Field(default_factory=list, description="Companion stylesheets")


class Manifest(RootModel[Dict[str, ManifestEntry]]):
    """Whole manifest keyed by source path"""

    def mapping_flatten(self) -> Dict[str, str]:
        """
        Flatten the manifest to a source -> output file mapping

        Each companion stylesheet is also exposed under ``<source>.css`` so
        a page can import the CSS a script entry pulled in.

        Returns:
            Dict mapping source asset paths to emitted file names
        """
        result: Dict[str, str] = {}
        for src, entry in self.root.items():
            result[src] = entry.file
            for css in entry.css:
                result[f"{src}.css"] = css
        return result
