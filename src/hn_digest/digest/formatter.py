"""Render articles as Telegram HTML messages."""

import html

from ..models import EnrichedArticle

HN_ITEM_URL = "https://news.ycombinator.com/item?id={id}"


class TelegramHTMLFormatter:
    """Formats one article per message using Telegram's HTML subset"""

    def format_article(self, article: EnrichedArticle) -> str:
        title = html.escape(article.title, quote=False)
        summary = html.escape(article.summary, quote=False)
        discussion_url = HN_ITEM_URL.format(id=article.id)
        link = html.escape(article.url or discussion_url)

        return (
            f"📰 <b>{title}</b>\n\n"
            f"<i>{summary}</i>\n\n"
            f"⬆️ {article.popularity} points | 💬 {article.discussion_count} comments\n"
            f'🔗 <a href="{link}">Article</a> | '
            f'<a href="{discussion_url}">HN Discussion</a>'
        )
