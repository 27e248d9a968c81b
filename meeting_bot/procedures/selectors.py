# FilePath: "/meeting_bot/procedures/selectors.py"
# Project: Meeting Bot Fleet (MBF)
# Description: UI selectors of the Teams web client, grouped so they can be swapped as one unit.

from dataclasses import dataclass


@dataclass(frozen=True)
class TeamsSelectors:
    # Launcher interstitial
    continue_in_browser: str = 'button[data-tid="joinOnWeb"]'

    # Pre-join screen
    name_input: str = 'input[placeholder="Type your name"]'
    join_now_button: str = 'button:has-text("Join now")'

    # Lobby indicator (matched by visible text)
    lobby_text: str = "Someone will let you in shortly"

    # In-call controls
    hangup_button: str = 'button[id="hangup-button"]'
    more_button: str = 'button[id="callingButtons-showMoreBtn"]'
    language_speech_menu: str = 'div[id="LanguageSpeechMenuControl-id"]'
    captions_toggle: str = 'div[id="closed-captions-button"]'

    # Caption surface
    caption_item: str = ".fui-ChatMessageCompact"
    caption_speaker: str = '[data-tid="author"]'
    caption_text: str = '[data-tid="closed-caption-text"]'


DEFAULT_SELECTORS = TeamsSelectors()
