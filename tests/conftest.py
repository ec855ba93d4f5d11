from pathlib import Path

import pytest

from cardscribe.models.card_record import CardRecord
from cardscribe.services.card_index import CardIndex

FIXTURES = Path(__file__).parent / "fixtures"


@pytest.fixture
def whisper_sample_path() -> Path:
    """Small WHISPER export covering split, leveler, plane and basic land cards."""
    return FIXTURES / "whisper_sample.txt"


@pytest.fixture
def whisper_lines(whisper_sample_path: Path) -> list[str]:
    return whisper_sample_path.read_text(encoding="utf-8").splitlines()


@pytest.fixture
def sample_cards() -> list[CardRecord]:
    """Hand-built records for matcher, price and API tests."""
    return [
        CardRecord(
            name="Lightning Bolt",
            localized_name="稲妻（いなずま）",
            type_line="インスタント",
            text="クリーチャー１体かプレイヤー１人を対象とする。稲妻はそれに３点のダメージを与える。",
        ),
        CardRecord(
            name="Fire",
            localized_name="火（ひ）",
            type_line="インスタント",
            related_name="Ice",
            link="火＋氷/Fire+Ice",
        ),
        CardRecord(
            name="Ice",
            localized_name="氷（こおり）",
            type_line="インスタント",
            related_name="Fire",
            link="火＋氷/Fire+Ice",
        ),
        CardRecord(
            name="Delver of Secrets",
            localized_name="秘密を掘り下げる者（ひみつをほりさげるもの）",
            type_line="クリーチャー --- 人間(Human)・ウィザード(Wizard)",
            pt="1/1",
            related_name="Insectile Aberration",
        ),
        CardRecord(
            name="Insectile Aberration",
            localized_name="昆虫の逸脱者（こんちゅうのいつだつしゃ）",
            type_line="クリーチャー --- 人間(Human)・昆虫(Insect)",
            pt="3/2",
            related_name="Delver of Secrets",
        ),
        CardRecord(
            name="Hymn to Tourach",
            localized_name="トーラックへの賛歌（とーらっくへのさんか）",
            type_line="ソーサリー",
        ),
        CardRecord(
            name="Island",
            localized_name="島（しま）",
            type_line="基本土地 --- 島(Island)",
        ),
        CardRecord(
            name="Lim-Dul's Vault",
            localized_name="リム＝ドゥールの櫃（りむ＝どぅーるのひつ）",
            type_line="インスタント",
        ),
        CardRecord(
            name="Tazeem",
            localized_name="タジーム",
            type_line="次元 --- ゼンディカー(Zendikar)",
            link="タジーム/Tazeem (次元カード)",
        ),
        CardRecord(
            name="Goblin Token",
            localized_name="ゴブリン・トークン",
            type_line="トークン・クリーチャー --- ゴブリン(Goblin)",
        ),
    ]


@pytest.fixture
def card_index(sample_cards: list[CardRecord]) -> CardIndex:
    return CardIndex.from_records(sample_cards)
