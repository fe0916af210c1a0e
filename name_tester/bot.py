import asyncio
import logging
from dataclasses import replace
from typing import Callable, Iterable, List, Sequence, TypeVar

from telegram import Update
from telegram.ext import Application, ApplicationBuilder, CommandHandler, ContextTypes

from .combinations import NameCombination, count_combinations, prepare_display
from .config import (
    COMBINATION_THRESHOLD,
    DB_PATH,
    DEFAULT_SAMPLE_SIZE,
    DISPLAY_BOTH,
    DISPLAY_FULL,
    DISPLAY_SHORT,
    NAME_SLOTS,
    SLOT_FIRST,
    SLOT_LAST,
    SLOT_MIDDLE,
    TELEGRAM_BOT_TOKEN,
)
from .core import (
    SharedLinkError,
    call_with_retry,
    get_local_state,
    load_shared_state,
    put_local_state,
    share_state,
)
from .db import Store, StoreUnavailableError
from .names_parser import parse_names
from .state import (
    AppState,
    clear_shortlist,
    shortlisted_combinations,
    toggle_shortlist,
    update_names,
)
from .suggestions import (
    NoValidSuggestionsError,
    SuggestionClient,
    SuggestionError,
    suggest_names,
)


logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

T = TypeVar("T")

STORE_UNAVAILABLE_TEXT = "Database is taking longer than expected to start. Please try again in a few minutes."

# Telegram rejects messages over 4096 characters
MESSAGE_LIMIT = 4000

TOGGLES = {
    "dups": "hide_duplicate_middle_last_names",
    "alpha": "show_alphabetical",
    "short": "use_short_names",
}

HELP_TEXT = """Enter candidate names, one per line, after the command. Nicknames go in brackets:
/first Thomas (Tom)
Elizabeth (Liz, Beth)

/first, /middle, /last - replace a name list
/names - show the lists
/combos [search] - browse combinations (large lists are sampled)
/all [search] - browse every combination
/like <n> - add or remove the n-th shown combination from the shortlist
/shortlist, /clear - show or clear the shortlist
/settings, /toggle <dups|alpha|short>, /mode <full|short|both>
/share, /load <code> - share a snapshot or load one
/suggest <first|middle|last> - ask for 5 suggestions"""


def command_body(text: str) -> str:
    """Everything after the command word, newlines kept."""
    parts = (text or "").split(maxsplit=1)
    return parts[1] if len(parts) > 1 else ""


def format_combination(combination: NameCombination, mode: str) -> str:
    if mode == DISPLAY_SHORT:
        return f"{combination.short_name} ({combination.short_initials})"
    if mode == DISPLAY_BOTH and combination.short_name != combination.full_name:
        return f"{combination.full_name} / {combination.short_name} ({combination.initials})"
    return f"{combination.full_name} ({combination.initials})"


def render_lines(combinations: Sequence[NameCombination], mode: str, shortlisted: Iterable[str]) -> List[str]:
    liked = set(shortlisted)
    return [
        f"{i}. {'♥ ' if c.id in liked else ''}{format_combination(c, mode)}"
        for i, c in enumerate(combinations, start=1)
    ]


def chunk_lines(lines: Sequence[str], limit: int = MESSAGE_LIMIT) -> List[str]:
    chunks: List[str] = []
    current = ""
    for line in lines:
        if current and len(current) + len(line) + 1 > limit:
            chunks.append(current)
            current = ""
        current = f"{current}\n{line}" if current else line
    if current:
        chunks.append(current)
    return chunks


def _store(context: ContextTypes.DEFAULT_TYPE) -> Store:
    return context.application.bot_data["store"]


def _display_mode(context: ContextTypes.DEFAULT_TYPE, state: AppState) -> str:
    return context.chat_data.get("mode") or (DISPLAY_SHORT if state.use_short_names else DISPLAY_FULL)


async def _with_retry(func: Callable[[], T]) -> T:
    # Store calls and backoff sleeps run in a worker thread, off the event loop
    return await asyncio.to_thread(call_with_retry, func)


async def _load_state(context: ContextTypes.DEFAULT_TYPE, user_id: int) -> AppState:
    store = _store(context)
    return await _with_retry(lambda: get_local_state(store, user_id))


async def _save_state(context: ContextTypes.DEFAULT_TYPE, user_id: int, state: AppState) -> None:
    store = _store(context)
    await _with_retry(lambda: put_local_state(store, user_id, state))


async def _reply_lines(update: Update, header: str, lines: Sequence[str]):
    for chunk in chunk_lines([header, *lines]):
        await update.message.reply_text(chunk)


async def start(update: Update, context: ContextTypes.DEFAULT_TYPE):
    state = await _load_state(context, update.effective_user.id)
    if not state.has_any_names():
        await update.message.reply_text("Welcome! Start by adding some names.\n\n" + HELP_TEXT)
        return
    await update.message.reply_text(HELP_TEXT)


async def _set_slot(update: Update, context: ContextTypes.DEFAULT_TYPE, slot: str):
    user_id = update.effective_user.id
    names = parse_names(command_body(update.message.text))
    state = await _load_state(context, user_id)
    lists = {SLOT_FIRST: state.first_names, SLOT_MIDDLE: state.middle_names, SLOT_LAST: state.last_names}
    lists[slot] = names

    dropped = len(state.shortlisted_combinations)
    state = update_names(state, lists[SLOT_FIRST], lists[SLOT_MIDDLE], lists[SLOT_LAST])
    dropped -= len(state.shortlisted_combinations)
    await _save_state(context, user_id, state)
    context.chat_data.pop("displayed", None)

    total = count_combinations(*("\n".join(lists[s]) for s in NAME_SLOTS))
    text = f"Saved {len(names)} {slot} name(s). {total} combination(s)."
    if dropped:
        text += f" {dropped} shortlisted combination(s) no longer exist and were removed."
    await update.message.reply_text(text)


async def set_first(update: Update, context: ContextTypes.DEFAULT_TYPE):
    await _set_slot(update, context, SLOT_FIRST)


async def set_middle(update: Update, context: ContextTypes.DEFAULT_TYPE):
    await _set_slot(update, context, SLOT_MIDDLE)


async def set_last(update: Update, context: ContextTypes.DEFAULT_TYPE):
    await _set_slot(update, context, SLOT_LAST)


async def show_names(update: Update, context: ContextTypes.DEFAULT_TYPE):
    state = await _load_state(context, update.effective_user.id)
    sections = []
    for title, names in (("First", state.first_names), ("Middle", state.middle_names), ("Last", state.last_names)):
        sections.append(f"{title} names:\n" + ("\n".join(names) if names else "(none)"))
    await update.message.reply_text("\n\n".join(sections))


async def _show_combinations(update: Update, context: ContextTypes.DEFAULT_TYPE, show_all: bool):
    state = await _load_state(context, update.effective_user.id)
    combinations = state.combinations()
    if not combinations:
        await update.message.reply_text("No name combinations yet. Add first, middle and last names.")
        return

    view = prepare_display(
        combinations,
        search_term=" ".join(context.args or []),
        hide_duplicates=state.hide_duplicate_middle_last_names,
        alphabetical=state.show_alphabetical,
        show_all=show_all,
        threshold=COMBINATION_THRESHOLD,
        sample_size=DEFAULT_SAMPLE_SIZE,
    )
    context.chat_data["displayed"] = [c.id for c in view.items]

    header = f"Name combinations: {view.matched}"
    if view.matched != view.total:
        header += f" of {view.total}"
    header += " total"
    if view.sampled:
        header += f"\nShowing a random sample of {len(view.items)}. Use /all to see everything."
    lines = render_lines(view.items, _display_mode(context, state), state.shortlisted_combinations)
    await _reply_lines(update, header, lines)


async def show_combinations(update: Update, context: ContextTypes.DEFAULT_TYPE):
    await _show_combinations(update, context, show_all=False)


async def show_all_combinations(update: Update, context: ContextTypes.DEFAULT_TYPE):
    await _show_combinations(update, context, show_all=True)


async def like(update: Update, context: ContextTypes.DEFAULT_TYPE):
    displayed = context.chat_data.get("displayed") or []
    try:
        index = int(context.args[0]) - 1
        if index < 0:
            raise IndexError(index)
        combination_id = displayed[index]
    except (IndexError, ValueError, TypeError):
        await update.message.reply_text("Use /like <n> with a number from the last /combos list.")
        return

    user_id = update.effective_user.id
    state = toggle_shortlist(await _load_state(context, user_id), combination_id)
    await _save_state(context, user_id, state)
    added = combination_id in state.shortlisted_combinations
    await update.message.reply_text("Added to shortlist." if added else "Removed from shortlist.")


async def show_shortlist(update: Update, context: ContextTypes.DEFAULT_TYPE):
    state = await _load_state(context, update.effective_user.id)
    liked = shortlisted_combinations(state, state.combinations())
    if not liked:
        await update.message.reply_text("No names shortlisted yet. Use /like on combinations you like.")
        return
    context.chat_data["displayed"] = [c.id for c in liked]
    lines = render_lines(liked, _display_mode(context, state), [])
    await _reply_lines(update, f"Shortlist ({len(liked)}):", lines)


async def clear(update: Update, context: ContextTypes.DEFAULT_TYPE):
    user_id = update.effective_user.id
    await _save_state(context, user_id, clear_shortlist(await _load_state(context, user_id)))
    await update.message.reply_text("Shortlist cleared.")


async def settings(update: Update, context: ContextTypes.DEFAULT_TYPE):
    state = await _load_state(context, update.effective_user.id)
    await update.message.reply_text(
        "Settings:\n"
        f"dups - hide duplicate middle/last names: {'on' if state.hide_duplicate_middle_last_names else 'off'}\n"
        f"alpha - alphabetical order: {'on' if state.show_alphabetical else 'off (random)'}\n"
        f"short - use short names: {'on' if state.use_short_names else 'off'}\n"
        f"display mode: {_display_mode(context, state)}"
    )


async def toggle(update: Update, context: ContextTypes.DEFAULT_TYPE):
    key = (context.args or [""])[0].lower()
    if key not in TOGGLES:
        await update.message.reply_text("Use /toggle dups, /toggle alpha or /toggle short.")
        return
    user_id = update.effective_user.id
    state = await _load_state(context, user_id)
    attr = TOGGLES[key]
    state = replace(state, **{attr: not getattr(state, attr)})
    await _save_state(context, user_id, state)
    await update.message.reply_text(f"{key}: {'on' if getattr(state, attr) else 'off'}")


async def set_mode(update: Update, context: ContextTypes.DEFAULT_TYPE):
    mode = (context.args or [""])[0].lower()
    if mode not in (DISPLAY_FULL, DISPLAY_SHORT, DISPLAY_BOTH):
        await update.message.reply_text("Use /mode full, /mode short or /mode both.")
        return
    context.chat_data["mode"] = mode
    await update.message.reply_text(f"Display mode: {mode}")


async def share(update: Update, context: ContextTypes.DEFAULT_TYPE):
    store = _store(context)
    state = await _load_state(context, update.effective_user.id)
    try:
        shortlink, url = await _with_retry(lambda: share_state(store, state))
    except StoreUnavailableError:
        await update.message.reply_text(STORE_UNAVAILABLE_TEXT)
        return
    except SharedLinkError as e:
        await update.message.reply_text(str(e))
        return
    await update.message.reply_text(f"Share code: {shortlink}\n{url}")


async def load(update: Update, context: ContextTypes.DEFAULT_TYPE):
    if not context.args:
        await update.message.reply_text("Use /load <code>.")
        return
    store = _store(context)
    shortlink = context.args[0].rsplit("/", 1)[-1]
    try:
        snapshot = await _with_retry(lambda: load_shared_state(store, shortlink))
    except StoreUnavailableError:
        await update.message.reply_text(STORE_UNAVAILABLE_TEXT)
        return
    except SharedLinkError as e:
        await update.message.reply_text(str(e))
        return

    # A shared snapshot replaces the local copy in full
    await _save_state(context, update.effective_user.id, snapshot.state)
    context.chat_data.pop("displayed", None)
    await update.message.reply_text(
        f"Loaded shared names (created {snapshot.created_at}, opened {snapshot.access_count} time(s)). "
        f"Your previous names were replaced."
    )


async def suggest(update: Update, context: ContextTypes.DEFAULT_TYPE):
    slot = (context.args or [""])[0].lower()
    state = await _load_state(context, update.effective_user.id)
    client: SuggestionClient = context.application.bot_data["suggestion_client"]
    try:
        suggestions = await asyncio.to_thread(suggest_names, slot, state, client)
    except NoValidSuggestionsError as e:
        await update.message.reply_text(str(e))
        return
    except SuggestionError as e:
        logger.warning("Suggestion failed for slot %r: %s", slot, e)
        await update.message.reply_text(str(e))
        return
    await update.message.reply_text(
        "Suggestions (copy the ones you like into /" + slot + "):\n" + "\n".join(suggestions)
    )


async def on_error(update: object, context: ContextTypes.DEFAULT_TYPE):
    """Tell the user about store outages; log everything else."""
    message = getattr(update, "effective_message", None)
    if isinstance(context.error, StoreUnavailableError):
        logger.error("Store unavailable while handling update: %s", context.error)
        if message is not None:
            await message.reply_text(STORE_UNAVAILABLE_TEXT)
        return
    logger.error("Unhandled error while handling update", exc_info=context.error)


async def close_store(application: Application):
    application.bot_data["store"].close()


def main():
    token = TELEGRAM_BOT_TOKEN
    if not token:
        logger.error("TELEGRAM_BOT_TOKEN environment variable not set.")
        raise RuntimeError("TELEGRAM_BOT_TOKEN environment variable not set.")

    store = Store(str(DB_PATH)).open()

    application = ApplicationBuilder().token(token).post_shutdown(close_store).build()
    application.bot_data["store"] = store
    application.bot_data["suggestion_client"] = SuggestionClient()

    application.add_handler(CommandHandler(["start", "help"], start))
    application.add_handler(CommandHandler("first", set_first))
    application.add_handler(CommandHandler("middle", set_middle))
    application.add_handler(CommandHandler("last", set_last))
    application.add_handler(CommandHandler("names", show_names))
    application.add_handler(CommandHandler("combos", show_combinations))
    application.add_handler(CommandHandler("all", show_all_combinations))
    application.add_handler(CommandHandler("like", like))
    application.add_handler(CommandHandler("shortlist", show_shortlist))
    application.add_handler(CommandHandler("clear", clear))
    application.add_handler(CommandHandler("settings", settings))
    application.add_handler(CommandHandler("toggle", toggle))
    application.add_handler(CommandHandler("mode", set_mode))
    application.add_handler(CommandHandler("share", share))
    application.add_handler(CommandHandler("load", load))
    application.add_handler(CommandHandler("suggest", suggest))
    application.add_error_handler(on_error)

    application.run_polling(allowed_updates=Update.ALL_TYPES)


if __name__ == "__main__":
    main()
