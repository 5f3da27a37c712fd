"""
CategoryMapper - Rule-Based Transaction Categorization Engine.

Keyword matching, accent- and case-insensitive. Rules are applied in order;
first match wins. The rule list is injected by the caller (usually read from
the store) so categorization stays a pure function of its inputs.
"""
from typing import Iterable, List, Optional, Dict

from .models import CategoryRule, Transaction
from .normalize import strip_diacritics


# ─────────────────────────────────────────────────────────────
# Default Rules
# ─────────────────────────────────────────────────────────────
# Used when the store holds no user-edited rules yet.

DEFAULT_CATEGORY_RULES = [
    CategoryRule("rent", [
        "loyer", "habitat", "hlm", "office", "logement", "apl", "caf",
        "bail", "propriétaire", "agence immobilière", "syndic", "charges locatives",
    ], True),
    CategoryRule("utilities", [
        "edf", "gdf", "sowee", "engie", "eau", "électricité", "power",
        "veolia", "suez", "total energie", "eni", "direct energie",
        "chauffage", "gaz", "kwh", "compteur",
    ], True),
    CategoryRule("insurance", [
        "bpce", "assurance", "habitation", "gav", "pj", "mutuelle",
        "maif", "axa", "macif", "groupama", "allianz", "generali",
        "mma", "matmut", "maaf", "gmf", "swiss life", "agipi",
        "responsabilité civile", "prévoyance", "santé",
    ], True),
    CategoryRule("internet", [
        "sfr", "box", "mobile", "forfait", "fibre", "orange", "free",
        "bouygues", "sosh", "red by sfr", "b&you", "nrj mobile",
        "prixtel", "coriolis", "la poste mobile", "internet", "adsl",
    ], True),
    CategoryRule("transport", [
        "navigo", "ratp", "sncf", "transport", "bus", "metro", "tram",
        "velib", "autolib", "taxi", "uber", "bolt", "kapten", "heetch",
        "blablacar", "ouigo", "tgv", "ter", "rer", "transilien",
        "péage", "autoroute", "essence", "gasoil", "carburant", "total", "shell", "bp",
    ], True),
    CategoryRule("investments", [
        "per", "immobilier", "retraite", "plan", "placement", "épargne",
        "livret a", "ldds", "pel", "cea", "pea", "assurance vie",
        "bourse", "action", "obligation", "sicav", "fcp", "etf",
        "crypto", "bitcoin", "ethereum", "trading", "boursorama", "degiro",
    ], True),
    CategoryRule("groceries", [
        "carrefour", "auchan", "market", "supermarché", "leclerc", "lidl",
        "monoprix", "franprix", "intermarché", "super u", "casino",
        "simply", "match", "cora", "géant", "hyper u", "picard",
        "primeur", "boucherie", "poissonnerie", "épicerie", "bio c bon",
        "naturalia", "biocoop", "la vie claire",
    ]),
    CategoryRule("food", [
        "deliveroo", "restaurant", "mcd", "kfc", "burger", "sandwich",
        "uber eats", "just eat", "pizza", "sushi", "boulangerie",
        "café", "bar", "brasserie", "bistrot", "kebab", "tacos",
        "dominos", "pizza hut", "mcdonalds", "quick", "subway",
        "starbucks", "paul", "brioche dorée", "class croute",
        "foodora", "frichti", "getir", "gorillas",
    ]),
    CategoryRule("shopping", [
        "ldlc", "fnac", "decathlon", "c&a", "go sport", "amazon",
        "zalando", "asos", "h&m", "zara", "uniqlo", "kiabi",
        "celio", "jules", "promod", "mango", "ikea", "but",
        "conforama", "leroy merlin", "castorama", "brico depot",
        "darty", "boulanger", "electro depot", "cdiscount",
        "aliexpress", "wish", "shein", "vinted", "leboncoin",
    ]),
    CategoryRule("smoking", [
        "tabac", "cigarette", "fumeur", "bureau de tabac", "la tabatière",
        "vape", "vapotage", "e-cigarette", "pmu", "fdj", "loto",
    ]),
    CategoryRule("entertainment", [
        "google play", "cinéma", "netflix", "billet", "spectacle",
        "spotify", "deezer", "apple music", "amazon prime", "disney",
        "canal+", "ocs", "hbo", "paramount", "crunchyroll",
        "playstation", "xbox", "nintendo", "steam", "epic games",
        "théâtre", "concert", "festival", "expo", "musée",
        "parc attraction", "bowling", "laser game", "escape game",
        "billetreduc", "ticketmaster", "fnac spectacles",
    ]),
    CategoryRule("health", [
        "pharmacie", "doctolib", "médical", "médecin", "docteur",
        "hopital", "clinique", "dentiste", "ophtalmo", "dermato",
        "kiné", "ostéo", "psy", "psychologue", "psychiatre",
        "laboratoire", "analyse", "radio", "scanner", "irm",
        "optique", "lunettes", "lentilles", "audition", "prothèse",
    ]),
]

DEFAULT_CATEGORY = "other"


def _fold(text: str) -> str:
    return strip_diacritics(text.lower())


class CategoryMapper:
    """
    Deterministic transaction categorizer using keyword matching.

    Usage:
        mapper = CategoryMapper(store.get_category_rules())
        category = mapper.categorize("PRLV SEPA EDF CLIENTS")
        # Returns: "utilities"
    """

    def __init__(self, rules: Optional[Iterable[CategoryRule]] = None):
        """
        Args:
            rules: Ordered rules; falls back to DEFAULT_CATEGORY_RULES when empty
        """
        self.rules: List[CategoryRule] = list(rules) if rules else list(DEFAULT_CATEGORY_RULES)
        self._folded = [
            (rule.category, [_fold(k) for k in rule.keywords if k])
            for rule in self.rules
        ]

    def categorize(self, label: str) -> str:
        if not label:
            return DEFAULT_CATEGORY

        folded = _fold(label)
        for category, keywords in self._folded:
            for keyword in keywords:
                if keyword in folded:
                    return category

        return DEFAULT_CATEGORY

    def apply(self, transactions: Iterable[Transaction]) -> List[Transaction]:
        """Set ``category`` in place on each transaction and return them."""
        result = []
        for tx in transactions:
            tx.category = self.categorize(tx.label)
            result.append(tx)
        return result

    def incompressible_categories(self) -> List[str]:
        return [rule.category for rule in self.rules if rule.is_incompressible]

    def get_category_stats(self, transactions: Iterable[Transaction]) -> Dict[str, int]:
        """Category distribution, zero counts omitted."""
        stats: Dict[str, int] = {}
        for tx in transactions:
            stats[tx.category] = stats.get(tx.category, 0) + 1
        return stats
