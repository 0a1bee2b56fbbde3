from __future__ import annotations

from dataclasses import dataclass
from html import escape

from app.schemas.invites import InviteDetails
from app.services.invites import build_deep_link

_STYLE = """
    :root {
        --primary: #009688;
        --accent: #FF5722;
        --text-primary: #212121;
        --text-secondary: #757575;
        --surface: #FFFFFF;
        --error: #D32F2F;
    }
    * { margin: 0; padding: 0; box-sizing: border-box; }
    body {
        font-family: 'Source Sans 3', -apple-system, BlinkMacSystemFont, sans-serif;
        background: linear-gradient(135deg, #f5f7fa 0%, #e4e8ec 100%);
        min-height: 100vh;
        display: flex;
        align-items: center;
        justify-content: center;
        padding: 20px;
        color: var(--text-primary);
    }
    .container {
        background: var(--surface);
        border-radius: 24px;
        box-shadow: 0 20px 60px rgba(0, 0, 0, 0.1);
        max-width: 420px;
        width: 100%;
        padding: 48px 32px;
        text-align: center;
    }
    .avatar {
        width: 100px;
        height: 100px;
        margin: 0 auto 24px;
        border-radius: 50%;
        background: var(--primary);
        display: flex;
        align-items: center;
        justify-content: center;
        font-size: 40px;
        color: white;
        font-weight: 600;
        overflow: hidden;
    }
    .avatar img { width: 100%; height: 100%; object-fit: cover; }
    .avatar-fallback,
    .avatar-initial {
        display: flex;
        align-items: center;
        justify-content: center;
        width: 100%;
        height: 100%;
    }
    .invite-message { font-size: 24px; font-weight: 600; margin-bottom: 8px; }
    .invite-detail { color: var(--text-secondary); margin-bottom: 32px; }
    .error-message { color: var(--error); margin-bottom: 32px; }
    .cta-button {
        display: inline-block;
        background: var(--accent);
        color: white;
        padding: 16px 32px;
        border-radius: 12px;
        font-weight: 600;
        text-decoration: none;
        margin-bottom: 24px;
    }
    .store-buttons { display: flex; gap: 12px; justify-content: center; }
    .store-button { color: var(--primary); text-decoration: none; font-weight: 600; }
"""


@dataclass(frozen=True)
class InvitePageLinks:
    site_url: str
    deep_link_scheme: str
    app_store_url: str
    play_store_url: str


def _initial(name: str) -> str:
    return name[:1].upper() or "?"


def _document(*, title: str, head_extra: str, body: str) -> str:
    return (
        "<!DOCTYPE html>\n"
        '<html lang="en">\n<head>\n'
        '<meta charset="UTF-8">\n'
        '<meta name="viewport" content="width=device-width, initial-scale=1.0">\n'
        f"<title>{escape(title)}</title>\n"
        '<link rel="icon" type="image/png" href="/images/app_icon.png">\n'
        f"{head_extra}"
        f"<style>{_STYLE}</style>\n"
        "</head>\n<body>\n"
        f'<div class="container">\n{body}\n</div>\n'
        "</body>\n</html>\n"
    )


def render_invite_error(message: str, *, links: InvitePageLinks) -> str:
    body = (
        '<h1 class="invite-message">Oops!</h1>\n'
        f'<p class="error-message">{escape(message)}</p>\n'
        f'<a href="{escape(links.site_url)}" class="cta-button">Go to ShizList</a>'
    )
    return _document(title="ShizList Invite", head_extra="", body=body)


def render_invite_page(invite: InviteDetails, *, links: InvitePageLinks) -> str:
    owner_name = invite.owner_display_name
    list_title = invite.list_title
    deep_link = build_deep_link(links.deep_link_scheme, invite.code)

    title = "ShizList Invite"
    if list_title:
        title = f"{title} - {list_title}"
        og_description = f"Join {owner_name}'s list: {list_title}"
        detail = f'You\'ve been invited to the <strong>"{escape(list_title)}"</strong> ShizList.'
    else:
        og_description = "Share the stuff you love with ShizList"
        detail = "Join ShizList to share wish lists with friends and family."

    head_extra = (
        f'<meta property="og:title" content="{escape(owner_name)} invited you to ShizList">\n'
        f'<meta property="og:description" content="{escape(og_description)}">\n'
        '<meta property="og:type" content="website">\n'
        f'<meta property="og:url" content="{escape(links.site_url)}/invite/{escape(invite.code)}">\n'
        f'<meta property="og:image" content="{escape(links.site_url)}/images/og-invite.png">\n'
    )

    avatar_url = invite.owner_avatar_url
    if avatar_url:
        # Broken image falls back to the initial.
        avatar = (
            f'<img src="{escape(avatar_url)}" alt="{escape(owner_name)}" '
            "onerror=\"this.style.display='none';this.nextElementSibling.style.display='flex';\">"
            f'<span class="avatar-fallback" style="display:none;">{escape(_initial(owner_name))}</span>'
        )
    else:
        avatar = f'<span class="avatar-initial">{escape(_initial(owner_name))}</span>'

    body = (
        f'<div class="avatar">{avatar}</div>\n'
        f'<h1 class="invite-message">{escape(owner_name)} invited you!</h1>\n'
        f'<p class="invite-detail">{detail}</p>\n'
        f'<a href="{escape(deep_link)}" class="cta-button" id="openApp">Open in ShizList</a>\n'
        '<div class="store-buttons">\n'
        f'<a href="{escape(links.app_store_url)}" class="store-button">App Store</a>\n'
        f'<a href="{escape(links.play_store_url)}" class="store-button">Google Play</a>\n'
        "</div>"
    )
    return _document(title=title, head_extra=head_extra, body=body)
