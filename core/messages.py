from __future__ import annotations

from html import escape

from core.delivery import DeliveryState, Page
from core.models import NormalizedPost

_RULE = "────────────────────"

NO_RESULTS = "No viral videos matched. Try another keyword or a lower minimum view count ✨"
DONE = "All done! ✔️"
RESULTS_READY = "✔ Results are ready!"


def fmt_num(value: int) -> str:
    return f"{value:,}"


def format_post(post: NormalizedPost, number: int) -> str:
    """HTML message for one delivered post."""
    return "\n".join(
        [
            f"🔥 Viral post #{number}",
            "",
            f'<a href="{escape(post.url)}">🔗 Open Post</a>',
            _RULE,
            "",
            f"👁 Views: {fmt_num(post.views)}",
            f"❤️ Likes: {fmt_num(post.likes)}",
            f"💬 Comments: {fmt_num(post.comments)}",
            "",
            _RULE,
            "📝 <b>Caption:</b>",
            escape(post.caption),
        ]
    )


def progress_text(percent: int) -> str:
    if percent >= 100:
        return RESULTS_READY
    if percent >= 90:
        return f"⏳ Preparing results… {percent}%"
    return f"⏳ Searching… {percent}%"


def continue_prompt(sent: int, total: int) -> str:
    return f"📦 Sent {fmt_num(sent)} of {fmt_num(total)} posts so far.\nSend more? 🔎"


def farewell(name: str = "") -> str:
    greeting = f"{name}, " if name else ""
    return (
        f"{greeting}hope you picked up a few good ideas.\n"
        "Whenever you want to go viral-hunting again, I'm ready. ⚡️"
    )


def page_prompt(page: Page) -> str:
    if page.state is DeliveryState.NO_RESULTS:
        return NO_RESULTS
    if page.state is DeliveryState.MORE_PENDING:
        return continue_prompt(page.sent, page.total)
    if page.state is DeliveryState.STOPPED:
        return farewell()
    return DONE


def render_page(page: Page) -> list[str]:
    return [format_post(post, page.start_index + i) for i, post in enumerate(page.posts)]
