import os
import asyncio

import discord
from discord.ext import commands

from config.defaults import COMMAND_PREFIX
from config.defaults import DEFAULT_DB_PATH
from config.defaults import DEFAULT_IMPORT_ROLE_NAMES
from config.defaults import DEFAULT_STATS_COLUMNS_PATH
from config.defaults import DEFAULT_STORAGE_TIMEOUT_SECONDS
from config.defaults import DISCORD_MAX_MESSAGE_LEN
from config.env import env_float
from config.env import parse_id_set
from config.env import parse_name_list
from db.storage import open_storage
from ingestion.csv_import import load_stats_columns
from misc.formatting import chunk_text
from misc.runtime_wiring import wire_bot_runtime

# =========================
# ENV
# =========================
DISCORD_TOKEN = os.getenv("DISCORD_TOKEN")

if not DISCORD_TOKEN:
    raise RuntimeError("Missing DISCORD_TOKEN env var")

DB_PATH = os.getenv("GOVERNOR_DB_PATH", DEFAULT_DB_PATH)
ALLOWED_CHANNEL_IDS = parse_id_set(os.getenv("GOVERNOR_ALLOWED_CHANNEL_IDS"))
OWNER_USER_IDS = parse_id_set(os.getenv("GOVERNOR_OWNER_USER_IDS"))
IMPORT_ROLE_NAMES = parse_name_list(os.getenv("GOVERNOR_IMPORT_ROLES"), DEFAULT_IMPORT_ROLE_NAMES)
STORAGE_TIMEOUT_SECONDS = env_float("GOVERNOR_STORAGE_TIMEOUT_SECONDS", DEFAULT_STORAGE_TIMEOUT_SECONDS)
STATS_COLUMNS_PATH = os.getenv("GOVERNOR_STATS_COLUMNS_PATH", DEFAULT_STATS_COLUMNS_PATH)

print(
    f"[CFG] db={DB_PATH} channels={'(all)' if not ALLOWED_CHANNEL_IDS else len(ALLOWED_CHANNEL_IDS)} "
    f"owners={len(OWNER_USER_IDS)} import_roles={','.join(IMPORT_ROLE_NAMES)} "
    f"storage_timeout={STORAGE_TIMEOUT_SECONDS}s"
)

STATS_COLUMNS, _stats_columns_warning = load_stats_columns(STATS_COLUMNS_PATH)
if _stats_columns_warning:
    print(f"[CFG] {_stats_columns_warning}")
print(f"[CFG] stats columns version={STATS_COLUMNS.version} fields={len(STATS_COLUMNS.fields)}")


# =========================
# DISCORD
# =========================
async def send_chunked(channel: discord.abc.Messageable, text: str) -> None:
    for part in chunk_text(text, DISCORD_MAX_MESSAGE_LEN):
        await channel.send(part)


intents = discord.Intents.default()
intents.message_content = True
intents.members = True

bot = commands.Bot(command_prefix=COMMAND_PREFIX, intents=intents)


async def main() -> None:
    storage = open_storage(DB_PATH, default_timeout=STORAGE_TIMEOUT_SECONDS)
    try:
        wire_bot_runtime(
            bot,
            storage=storage,
            allowed_channel_ids=ALLOWED_CHANNEL_IDS,
            owner_user_ids=OWNER_USER_IDS,
            import_role_names=IMPORT_ROLE_NAMES,
            stats_columns=STATS_COLUMNS,
            send_chunked=send_chunked,
            command_prefix=COMMAND_PREFIX,
        )
        async with bot:
            await bot.start(DISCORD_TOKEN)
    finally:
        await storage.close()


if __name__ == "__main__":
    asyncio.run(main())
