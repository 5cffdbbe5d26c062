"""
Sector classification and per-sector market breadth.

The listing page usually supplies a sector; when it does not, the symbol is
matched against an ordered table of naming heuristics.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Pattern, Sequence, Tuple

from dsefeed.core.models import StockData
from dsefeed.core.pricing import round2

OTHERS = "Others"

_FUND = r"MF|FUND"

# (sector, include, exclude); first matching rule wins
SECTOR_RULES: Sequence[Tuple[str, Pattern, Optional[Pattern]]] = [
    (sector, re.compile(include, re.IGNORECASE), re.compile(exclude, re.IGNORECASE) if exclude else None)
    for sector, include, exclude in (
        (
            "Bank",
            r"BANK|BRACK|NRBC|SBAC|CITY|JAMUNA|MERCAN|SHAHJ|SIBL|SOUTHEAST|STANDB|TRUST|UCBL|UTTARA|PUBALI|RUPALI"
            r"|PRIME|NBL|NCC|EXIM|EBL|IFIC|ISLAMI|DHAKA|ALARM|ASIAB|FIRST|PADMA|MIDLAND|COMMUN|SONARBANG",
            _FUND,
        ),
        ("Cement", r"CEMENT|LAFARG|HEIDEL|PREMIER|CONFID|SHYAM|MICEM|KPCL", None),
        ("Ceramics Sector", r"CERAMIC|MONNO|RAKCER|SINO|FUWANG|STDCER", None),
        (
            "Pharmaceuticals & Chemicals",
            r"PHARMA|DRUG|ACME|SQUR|RENATA|IBNSINA|ORION|GLAXO|BXPHARMA|ESKAYEF|BEACON|LIBROP|MARICO|NAVANA"
            r"|SANOFI|RECKITT|FORMULA",
            None,
        ),
        (
            "Insurance",
            r"INSUR|DELTALIFE|DHAKALIFE|EASTERNINS|EASTLANDINS|FAREASTLIF|FIDELITY|GLOBALINS|GREENDELT|JANATALIFE"
            r"|KARNAPH|MEGHNALIFE|MERCANINS|NATIONALIF|NITOLINS|PARAMOUNT|PEOPLESINS|PHOENIXINS|PIONEERINS"
            r"|POPULARLIF|PRAGATILIF|PRIMEINS|PROGRELIFE|RELIANCEINS|REPUBLICINS|RUPALIINS|SANDHANINS|SENAKALYAN"
            r"|SONARLIFE|STANDINS|SUNLIFEINS|UNIONINS|BGIC|AGRANINS|ASIAINS|CENTRALNSC|CONTININS",
            None,
        ),
        (
            "Financial Institutions",
            r"FINANCE|LEASING|IDLC|IPDC|ISLAMICFIN|LANKABD|MIDAS|NHFIL|PLFSL|PREMF|UNILEAS|DBH|FIRSTFIN|GSP|BIFC"
            r"|BDFINANCE|FAREASTFIN|ILFSL|ICBAMCL",
            None,
        ),
        ("Fuel & Power", r"POWER|ENERGY|DESCO|DPDC|TITASGAS|OIL|PETRO|LINDE|SUMMIT|BARAKA|UPGDCL|SPCL|BGDCL", None),
        (
            "Engineering",
            r"STEEL|BSRM|GPHI|KSRM|RSRM|WALTON|SINGER|RUNNER|QUASEM|AZIZPIPES|AFTAB|BDAUTO|BATASHOE|LHBL"
            r"|OLYMPIC|MJLBD|MAXGEN|KAY.?QUE|KDSLTD",
            None,
        ),
        (
            "Textile",
            r"TEX|YARN|SPIN|WEAV|DENIM|COTTON|GARMENT|CRESCENT|ENVOY|FAMILY|MAKSONS|MATIN|METRO|MONNOSTAF"
            r"|RAHIM|SAFKO|SAMOR|SHEEP|STYLE|TALLUS|TOKYO|ZAHEEN|ZAFAR|ALHAJ|ANLIMA|APEX|CMC|CVOPRL|DESHBANDHU"
            r"|DULAMI|FEKDIL|FOKDIL|GENNEXT|GENERATION|HAMID|HWA|MITHUN|NURANI|SONARGAON",
            None,
        ),
        (
            "Food & Allied",
            r"FOOD|DAIRY|SUGAR|AGRO|AMCL|BATBC|BENGALBISC|GEMINI|IFAD|KOHINOOR|MEGHNA|NATFOOD|SILCO|ACIFL|BSCCL",
            None,
        ),
        (
            "Mutual Funds",
            r"1ST|MF$|ICB|GRAMEEN|POPULAR1|RELIANCE1|SEBL1|JANATAMF|PRIMFMF|ABB1|AIBL1|CAPM|DBH1|EBL1|FBFIF"
            r"|GREENDEL|IFIC1|LRGLOB|MBL1|NCCBL|NLI1|PF1|PHPMF|PRIME1|SEMLLE",
            None,
        ),
        (
            "IT Sector",
            r"TECH|SOFTWARE|COMPUTER|DIGITAL|AAMRA|BDCOM|BRACIT|DAFFODIL|DATASOFT|GENEXIL|INFO|SQLTC|ADNTEL",
            _FUND,
        ),
        ("Telecommunication", r"^GP$|TELECOM|ROBI|BANGLALINK|TELETALK", None),
        ("Jute", r"JUTE|SONALIPAPR|BJMC", None),
        ("Tannery Industries", r"LEATHER|TANNERY|APEXTAN|BATABD|LEGACY|SAMATALETH|FORTUNE", None),
        ("Paper & Printing", r"PAPER|PRINT|KPPL", None),
        ("Travel & Leisure", r"HOTEL|TRAVEL|RESORT|TOURISM|UNIQUEHOT", None),
        ("Services & Real Estate", r"ESTATE|PROPERTY|BDTHAI|ECABLES|EASTERNHOUS|EMERALD", None),
        ("Pharmaceuticals & Chemicals", r"^ACI$", None),
        ("Miscellaneous", r"BEXIMCO|ACTIVEFINE|BDLAMPS|MEGCONMIL|NAHEE|NTLTUBES|RANGPUR", None),
    )
]


def _match(value: str) -> Optional[str]:
    for sector, include, exclude in SECTOR_RULES:
        if include.search(value) and not (exclude and exclude.search(value)):
            return sector
    return None


def classify_sector(symbol: str, name: str = "") -> str:
    """Sector guessed from the trading code, then the company name; ``"Others"`` if neither matches."""
    return _match(symbol.strip().upper()) or (name and _match(name.strip().upper())) or OTHERS


def sector_of(stock: StockData) -> str:
    return stock.sector or classify_sector(stock.symbol, stock.name)


@dataclass
class SectorSummary:
    name: str
    value_mn: float = 0.0
    stocks: int = 0
    advancers: int = 0
    decliners: int = 0
    unchanged: int = 0
    avg_change_percent: float = 0.0
    symbols: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "valueMn": self.value_mn,
            "stocks": self.stocks,
            "advancers": self.advancers,
            "decliners": self.decliners,
            "unchanged": self.unchanged,
            "avgChangePercent": self.avg_change_percent,
            "symbols": self.symbols,
        }


def summarize_sectors(stocks: Sequence[StockData]) -> List[SectorSummary]:
    """Turnover and breadth per sector, largest turnover first."""
    summaries: Dict[str, SectorSummary] = {}
    change_totals: Dict[str, float] = {}

    for stock in stocks:
        sector = sector_of(stock)
        summary = summaries.setdefault(sector, SectorSummary(name=sector))
        summary.value_mn += stock.value_mn
        summary.stocks += 1
        summary.symbols.append(stock.symbol)
        if stock.change > 0:
            summary.advancers += 1
        elif stock.change < 0:
            summary.decliners += 1
        else:
            summary.unchanged += 1
        change_totals[sector] = change_totals.get(sector, 0.0) + stock.change_percent

    for sector, summary in summaries.items():
        summary.value_mn = round2(summary.value_mn)
        summary.avg_change_percent = round2(change_totals[sector] / summary.stocks)

    return sorted(summaries.values(), key=lambda s: s.value_mn, reverse=True)
