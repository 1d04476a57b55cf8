"""livedoc: keep generated regions of hand-written documents up to date.

Embed authors only need the names exported here::

    from livedoc import define_embed

    @define_embed(depends_on=["metadata_db"])
    async def table_columns(ctx):
        rows = await ctx.datasources["metadata_db"].query(
            "SELECT name, type FROM columns WHERE table_name = ?", [ctx.params["id"]]
        )
        return {"content": ctx.markdown.table(["Column", "Type"], [[r["name"], r["type"]] for r in rows])}
"""

from livedoc.datasources.base import Datasource, Record
from livedoc.embeds.markdown import MarkdownHelper
from livedoc.embeds.registry import EmbedContext, EmbedDefinition, EmbedResult, define_embed

__version__ = "0.1.0"

__all__ = [
    "Datasource",
    "EmbedContext",
    "EmbedDefinition",
    "EmbedResult",
    "MarkdownHelper",
    "Record",
    "define_embed",
]
