"""Zone catalogue: the static e-solat zone list and the live page scrape."""
from __future__ import annotations

from itertools import groupby
from typing import Iterable, Optional

from bs4 import BeautifulSoup

from . import config
from .logging_utils import _scraper_event
from .models import ZoneEntry, ZoneGroup
from .selenium_client import DriverFactory, browser_session, load_page

_STATIC_ZONES: tuple[tuple[str, str, str], ...] = (
    ("JHR01", "Johor", "Pulau Aur dan Pulau Pemanggil"),
    ("JHR02", "Johor", "Johor Bahru, Kota Tinggi, Mersing, Kulai"),
    ("JHR03", "Johor", "Kluang, Pontian"),
    ("JHR04", "Johor", "Batu Pahat, Muar, Segamat, Gemas Johor, Tangkak"),
    ("KDH01", "Kedah", "Kota Setar, Kubang Pasu, Pokok Sena (Daerah Kecil)"),
    ("KDH02", "Kedah", "Kuala Muda, Yan, Pendang"),
    ("KDH03", "Kedah", "Padang Terap, Sik"),
    ("KDH04", "Kedah", "Baling"),
    ("KDH05", "Kedah", "Bandar Baharu, Kulim"),
    ("KDH06", "Kedah", "Langkawi"),
    ("KDH07", "Kedah", "Puncak Gunung Jerai"),
    ("KTN01", "Kelantan", "Bachok, Kota Bharu, Machang, Pasir Mas, Pasir Puteh, Tanah Merah, Tumpat, Kuala Krai, Mukim Chiku"),
    ("KTN02", "Kelantan", "Gua Musang (Daerah Galas Dan Bertam), Jeli, Jajahan Kecil Lojing"),
    ("MLK01", "Melaka", "SELURUH NEGERI MELAKA"),
    ("NGS01", "Negeri Sembilan", "Tampin, Jempol"),
    ("NGS02", "Negeri Sembilan", "Jelebu, Kuala Pilah, Rembau"),
    ("NGS03", "Negeri Sembilan", "Port Dickson, Seremban"),
    ("PHG01", "Pahang", "Pulau Tioman"),
    ("PHG02", "Pahang", "Kuantan, Pekan, Muadzam Shah"),
    ("PHG03", "Pahang", "Jerantut, Temerloh, Maran, Bera, Chenor, Jengka"),
    ("PHG04", "Pahang", "Bentong, Lipis, Raub"),
    ("PHG05", "Pahang", "Genting Sempah, Janda Baik, Bukit Tinggi"),
    ("PHG06", "Pahang", "Cameron Highlands, Genting Higlands, Bukit Fraser"),
    ("PHG07", "Pahang", "Zon Khas Daerah Rompin, (Mukim Rompin, Mukim Endau, Mukim Pontian)"),
    ("PLS01", "Perlis", "Kangar, Padang Besar, Arau"),
    ("PNG01", "Pulau Pinang", "Seluruh Negeri Pulau Pinang"),
    ("PRK01", "Perak", "Tapah, Slim River, Tanjung Malim"),
    ("PRK02", "Perak", "Kuala Kangsar, Sg. Siput , Ipoh, Batu Gajah, Kampar"),
    ("PRK03", "Perak", "Lenggong, Pengkalan Hulu, Grik"),
    ("PRK04", "Perak", "Temengor, Belum"),
    ("PRK05", "Perak", "Kg Gajah, Teluk Intan, Bagan Datuk, Seri Iskandar, Beruas, Parit, Lumut, Sitiawan, Pulau Pangkor"),
    ("PRK06", "Perak", "Selama, Taiping, Bagan Serai, Parit Buntar"),
    ("PRK07", "Perak", "Bukit Larut"),
    ("SBH01", "Sabah", "Bahagian Sandakan (Timur), Bukit Garam, Semawang, Temanggong, Tambisan, Bandar Sandakan, Sukau"),
    ("SBH02", "Sabah", "Beluran, Telupid, Pinangah, Terusan, Kuamut, Bahagian Sandakan (Barat)"),
    ("SBH03", "Sabah", "Lahad Datu, Silabukan, Kunak, Sahabat, Semporna, Tungku, Bahagian Tawau (Timur)"),
    ("SBH04", "Sabah", "Bandar Tawau, Balong, Merotai, Kalabakan, Bahagian Tawau (Barat)"),
    ("SBH05", "Sabah", "Kudat, Kota Marudu, Pitas, Pulau Banggi, Bahagian Kudat"),
    ("SBH06", "Sabah", "Gunung Kinabalu"),
    ("SBH07", "Sabah", "Kota Kinabalu, Ranau, Kota Belud, Tuaran, Penampang, Papar, Putatan, Bahagian Pantai Barat"),
    ("SBH08", "Sabah", "Pensiangan, Keningau, Tambunan, Nabawan, Bahagian Pendalaman (Atas)"),
    ("SBH09", "Sabah", "Beaufort, Kuala Penyu, Sipitang, Tenom, Long Pasia, Membakut, Weston, Bahagian Pendalaman (Bawah)"),
    ("SGR01", "Selangor", "Gombak, Petaling, Sepang, Hulu Langat, Hulu Selangor, S.Alam"),
    ("SGR02", "Selangor", "Kuala Selangor, Sabak Bernam"),
    ("SGR03", "Selangor", "Klang, Kuala Langat"),
    ("SWK01", "Sarawak", "Limbang, Lawas, Sundar, Trusan"),
    ("SWK02", "Sarawak", "Miri, Niah, Bekenu, Sibuti, Marudi"),
    ("SWK03", "Sarawak", "Pandan, Belaga, Suai, Tatau, Sebauh, Bintulu"),
    ("SWK04", "Sarawak", "Sibu, Mukah, Dalat, Song, Igan, Oya, Balingian, Kanowit, Kapit"),
    ("SWK05", "Sarawak", "Sarikei, Matu, Julau, Rajang, Daro, Bintangor, Belawai"),
    ("SWK06", "Sarawak", "Lubok Antu, Sri Aman, Roban, Debak, Kabong, Lingga, Engkelili, Betong, Spaoh, Pusa, Saratok"),
    ("SWK07", "Sarawak", "Serian, Simunjan, Samarahan, Sebuyau, Meludam"),
    ("SWK08", "Sarawak", "Kuching, Bau, Lundu, Sematan"),
    ("SWK09", "Sarawak", "Zon Khas (Kampung Patarikan)"),
    ("TRG01", "Terengganu", "Kuala Terengganu, Marang, Kuala Nerus"),
    ("TRG02", "Terengganu", "Besut, Setiu"),
    ("TRG03", "Terengganu", "Hulu Terengganu"),
    ("TRG04", "Terengganu", "Dungun, Kemaman"),
    ("WLY01", "Wilayah Persekutuan", "Kuala Lumpur, Putrajaya"),
    ("WLY02", "Wilayah Persekutuan", "Labuan"),
)


def static_zones() -> list[ZoneEntry]:
    return [ZoneEntry(code, state, description) for code, state, description in _STATIC_ZONES]


def group_zones(entries: Iterable[ZoneEntry]) -> list[ZoneGroup]:
    """Group entries by state, ordered by state then zone code."""

    ordered = sorted(entries, key=lambda entry: (entry.state, entry.code))
    return [
        ZoneGroup(state=state, zones=[(entry.code, entry.description) for entry in members])
        for state, members in groupby(ordered, key=lambda entry: entry.state)
    ]


def parse_zone_catalog(page_html: str) -> list[ZoneEntry]:
    """Extract ``ZoneEntry`` rows from the ``#inputzone`` optgroups of a page."""

    soup = BeautifulSoup(page_html, "html5lib")
    select = soup.find("select", id="inputzone")
    if select is None:
        return []

    entries: list[ZoneEntry] = []
    seen: set[str] = set()
    for optgroup in select.find_all("optgroup"):
        state = (optgroup.get("label") or "").strip()
        if not state:
            continue
        for option in optgroup.find_all("option"):
            code = (option.get("value") or "").strip().upper()
            text = option.get_text(" ", strip=True)
            if not code or not text or code in seen:
                continue
            # Options read "WLY01 - Kuala Lumpur, Putrajaya"; keep the description.
            prefix = f"{code} - "
            description = text[len(prefix):] if text.upper().startswith(prefix) else text
            entries.append(ZoneEntry(code, state, description.strip()))
            seen.add(code)
    return entries


def scrape_zone_catalog(
    driver_factory: Optional[DriverFactory] = None,
    *,
    url: Optional[str] = None,
    settle_seconds: Optional[float] = None,
) -> list[ZoneEntry]:
    """Load the live page in a private browser session and parse its zone list."""

    target = url or config.BROWSER_BASE_URL
    settle = settle_seconds if settle_seconds is not None else config.PAGE_SETTLE_SECONDS
    with browser_session(driver_factory) as driver:
        load_page(driver, target, settle)
        entries = parse_zone_catalog(driver.page_source)

    _scraper_event(
        "state",
        phase="zone_catalog",
        kind="scraped",
        states=len({entry.state for entry in entries}),
        zones=len(entries),
    )
    return entries


def load_zone_catalog(driver_factory: Optional[DriverFactory] = None) -> list[ZoneEntry]:
    """Return catalogue entries from the configured source."""

    if config.use_browser_zone_source():
        return scrape_zone_catalog(driver_factory)
    return static_zones()


__all__ = [
    "static_zones",
    "group_zones",
    "parse_zone_catalog",
    "scrape_zone_catalog",
    "load_zone_catalog",
]
