"""
Dalil - Taxonomy Constants
===========================
Static vocabulary for category detection and entity recognition.

Everything here is plain data so it can be reviewed and extended
without touching detection logic.

Exports
-------
CATEGORY_MAPPINGS
    ``(phrase, category, subcategory)`` — user phrasing mapped to the
    catalog's official category/subcategory labels.
KEYWORD_RULES
    ``(trigger_words, category, subcategory)`` in evaluation order.
    A rule fires when *any* trigger word is present in the query.
STOPWORDS
    Words ignored when tokenising queries and subcategory labels.
ENTITY_TYPE_SEEDS
    Venue-type nouns that turn "<Name> <noun>" into a named-entity lookup.
GENERIC_QUALIFIERS
    Adjectives that precede a venue noun without naming a venue ("best beach").
TOPIC_STOPWORDS, QUESTION_STARTERS
    Used by conversation memory to pick a query's main topic.
"""

# ══════════════════════════════════════════════════════════════════════
#  PHRASE → CATEGORY / SUBCATEGORY
# ══════════════════════════════════════════════════════════════════════

CATEGORY_MAPPINGS: tuple[tuple[str, str, str], ...] = (
    # ── Activities ─────────────────────────────────────────────────────
    ("adventure", "activities", "adventure"),
    ("city", "activities", "city"),
    ("day trips", "activities", "day trips outside dubai"),
    ("desert", "activities", "desert"),
    ("events & shows", "activities", "events & shows"),
    ("family activities", "activities", "families & young adults"),
    ("free activities", "activities", "free"),
    ("gifts birthdays", "activities", "gifts for birthdays"),
    ("gifts couples", "activities", "gifts for couples & weddings"),
    ("gifts friends", "activities", "gifts for friends"),
    ("gifts her", "activities", "gifts for her"),
    ("gifts him", "activities", "gifts for him"),
    ("gifts teenagers", "activities", "gifts for teenagers"),
    ("must do", "activities", "must do"),
    ("must do desert", "activities", "must do desert based"),
    ("must do premium", "activities", "must do premium"),
    ("must do sea", "activities", "must do sea based"),
    ("sea", "activities", "sea"),
    ("vip", "activities", "vip"),
    # ── Dining ─────────────────────────────────────────────────────────
    ("all you can eat breakfast", "dining", "all you can eat breakfast"),
    ("all you can eat sushi", "dining", "all you can eat sushi"),
    ("arabic casual", "dining", "arabic casual"),
    ("baristas", "dining", "baristas"),
    ("beachfront", "dining", "beachfront"),
    ("breakfast", "dining", "breakfast"),
    ("brunch", "dining", "brunch deals"),
    ("burgers", "dining", "burgers"),
    ("business lunch", "dining", "business lunch"),
    ("casual dining", "dining", "casual"),
    ("casual sushi", "dining", "casual sushi"),
    ("chinese", "dining", "chinese"),
    ("emirati", "dining", "emirati"),
    ("family friendly brunch", "dining", "family friendly brunch"),
    ("french", "dining", "french"),
    ("greek food", "dining", "greek"),
    ("healthy", "dining", "healthy"),
    ("hidden gems", "dining", "hidden gems"),
    ("indian", "dining", "indian"),
    ("italian food", "dining", "italian"),
    ("japanese", "dining", "japanese"),
    ("japanese-peruvian", "dining", "japanese-peruvian"),
    ("lebanese", "dining", "lebanese"),
    ("live entertainment dining", "dining", "live entertainment"),
    ("night brunch", "dining", "night brunch"),
    ("outdoor dining", "dining", "outdoor"),
    ("pan asian", "dining", "pan asian"),
    ("persian food", "dining", "persian"),
    ("pizza casual", "dining", "pizza casual"),
    ("romantic", "dining", "romantic"),
    ("seafood restaurants", "dining", "seafood"),
    ("steak houses", "dining", "steak"),
    ("turkish food", "dining", "turkish"),
    ("unique", "dining", "unique"),
    ("upscale", "dining", "upscale"),
    ("value casual", "dining", "value casual"),
    # ── Hotels ─────────────────────────────────────────────────────────
    ("3 star hotels", "hotels", "3 star hotels"),
    ("4 star hotels", "hotels", "4 star hotels"),
    ("5 star hotels", "hotels", "5 star hotels"),
    ("6 star hotels", "hotels", "6 star hotels"),
    ("7 star hotels", "hotels", "7 star hotels"),
    ("beach resorts", "hotels", "beach resorts"),
    ("luxury hotels", "hotels", "luxury city hotels"),
    ("party hotels", "hotels", "party hotels"),
    # ── Places ─────────────────────────────────────────────────────────
    ("shisha", "places", "shisha spots to chill"),
    ("shisha lounge", "places", "shisha spots to chill"),
    ("shisha bar", "places", "shisha spots to chill"),
    ("shisha cafe", "places", "shisha spots to chill"),
    ("shisha club", "places", "shisha spots to chill"),
    ("shisha buzz", "places", "shisha spots with buzz"),
    ("shisha chill", "places", "shisha spots to chill"),
    ("beach", "places", "beach clubs to chill"),
    ("party beach", "places", "beach clubs to party"),
    ("pool", "places", "pool clubs to chill"),
    ("party pool", "places", "pool clubs to party"),
    ("lounge", "places", "indoor bars & lounges"),
    ("rooftop", "places", "rooftop bars & lounges"),
    # ── Trending Hot Spots ─────────────────────────────────────────────
    ("ladies night", "trending hot spots", "ladies nights"),
    ("nightlife spots", "trending hot spots", "nightlife"),
)


# ══════════════════════════════════════════════════════════════════════
#  KEYWORD RULES (ordered; first firing rule wins)
# ══════════════════════════════════════════════════════════════════════

KEYWORD_RULES: tuple[tuple[tuple[str, ...], str, str], ...] = (
    (("adventure",), "activities", "adventure"),
    (("city",), "activities", "city"),
    (("day", "trips", "outside", "dubai"), "activities", "day trips outside dubai"),
    (("desert",), "activities", "desert"),
    (("events", "shows"), "activities", "events & shows"),
    (("families", "young", "adults"), "activities", "families & young adults"),
    (("free",), "activities", "free"),
    (("gifts", "birthdays"), "activities", "gifts for birthdays"),
    (("gifts", "couples", "weddings"), "activities", "gifts for couples & weddings"),
    (("gifts", "friends"), "activities", "gifts for friends"),
    (("gifts",), "activities", "gifts for her"),
    (("gifts",), "activities", "gifts for him"),
    (("gifts", "teenagers"), "activities", "gifts for teenagers"),
    (("must",), "activities", "must do"),
    (("must", "desert", "based"), "activities", "must do desert based"),
    (("must", "premium"), "activities", "must do premium"),
    (("must", "sea", "based"), "activities", "must do sea based"),
    (("sea",), "activities", "sea"),
    (("vip",), "activities", "vip"),
    (("eat", "breakfast"), "dining", "all you can eat breakfast"),
    (("eat", "sushi"), "dining", "all you can eat sushi"),
    (("arabic", "casual"), "dining", "arabic casual"),
    (("baristas",), "dining", "baristas"),
    (("beachfront",), "dining", "beachfront"),
    (("breakfast",), "dining", "breakfast"),
    (("brunch",), "dining", "brunch deals"),
    (("burgers",), "dining", "burgers"),
    (("business", "lunch"), "dining", "business lunch"),
    (("cafes",), "dining", "cafés"),
    (("casual",), "dining", "casual"),
    (("casual", "sushi"), "dining", "casual sushi"),
    (("chinese",), "dining", "chinese"),
    (("emirati",), "dining", "emirati"),
    (("family", "friendly", "brunch"), "dining", "family friendly brunch"),
    (("french",), "dining", "french"),
    (("fully", "redeemable", "pool", "clubs"), "dining", "fully redeemable pool clubs"),
    (("greek",), "dining", "greek"),
    (("healthy",), "dining", "healthy"),
    (("hidden", "gems"), "dining", "hidden gems"),
    (("indian",), "dining", "indian"),
    (("italian",), "dining", "italian"),
    (("japanese",), "dining", "japanese"),
    (("japanese", "peruvian"), "dining", "japanese-peruvian"),
    (("lebanese",), "dining", "lebanese"),
    (("live", "entertainment"), "dining", "live entertainment"),
    (("new",), "dining", "new"),
    (("night", "brunch"), "dining", "night brunch"),
    (("outdoor",), "dining", "outdoor"),
    (("outdoor", "lively"), "dining", "outdoor & lively"),
    (("shisha", "hookah"), "places", "shisha spots to chill"),
    (("shisha", "buzz"), "places", "shisha spots with a buzz"),
    (("rooftop", "bar"), "places", "rooftop bars & lounges"),
    (("sundowners",), "places", "sundowners"),
    (("trending", "hot", "spots"), "trending hot spots", "dining"),
    (("jazz", "live", "music", "nights"), "trending hot spots", "jazz & live music nights"),
    (("ladies", "days"), "trending hot spots", "ladies days"),
    (("ladies", "nights"), "trending hot spots", "ladies nights"),
    (("nightlife",), "trending hot spots", "nightlife"),
)


# ══════════════════════════════════════════════════════════════════════
#  TOKENISATION VOCABULARY
# ══════════════════════════════════════════════════════════════════════

STOPWORDS: frozenset[str] = frozenset({
    "a", "an", "the", "and", "or", "but", "is", "are", "was", "were", "be", "been", "being",
    "to", "of", "for", "with", "about", "against", "between", "into", "through", "during",
    "before", "after", "above", "below", "from", "up", "down", "in", "out", "on", "off",
    "over", "under", "again", "further", "then", "once", "here", "there", "when", "where",
    "why", "how", "all", "any", "both", "each", "few", "more", "most", "other", "some",
    "such", "no", "nor", "not", "only", "own", "same", "so", "than", "too", "very",
    "i", "me", "my", "myself", "we", "our", "ours", "ourselves", "you", "your", "yours",
    "yourself", "yourselves", "he", "him", "his", "himself", "she", "her", "hers", "herself",
    "it", "its", "itself", "they", "them", "their", "theirs", "themselves", "what", "which",
    "who", "whom", "this", "that", "these", "those", "am", "have", "has", "had", "having",
    "do", "does", "did", "doing", "would", "should", "could", "ought", "can", "i'm", "you're",
    "he's", "she's", "it's", "we're", "they're", "i've", "you've", "we've", "they've", "i'd",
    "you'd", "he'd", "she'd", "we'd", "they'd", "i'll", "you'll", "he'll", "she'll", "we'll",
    "they'll", "isn't", "aren't", "wasn't", "weren't", "hasn't", "haven't", "hadn't",
    "doesn't", "don't", "didn't", "won't", "wouldn't", "shan't", "shouldn't", "can't",
    "cannot", "couldn't", "mustn't", "let's", "that's", "who's", "what's", "here's",
    "there's", "when's", "where's", "why's", "how's", "looking", "want", "like", "need",
    "get", "find", "going", "go", "show", "tell", "please", "at",
})

ENTITY_TYPE_SEEDS: tuple[str, ...] = (
    "beach", "club", "hotel", "restaurant", "bar", "lounge", "spa",
    "resort", "cafe", "mall", "park", "golf", "pool",
)

GENERIC_QUALIFIERS: frozenset[str] = frozenset({
    "best", "good", "great", "nice", "top", "cheap", "affordable", "expensive", "luxury",
    "popular", "famous", "new", "nearby", "local", "quiet", "busy", "cool", "fancy",
    "romantic", "family", "private", "public", "any", "another", "different", "similar",
    "recommended", "favourite", "favorite", "decent", "budget",
})


# ══════════════════════════════════════════════════════════════════════
#  CONVERSATION TOPICS
# ══════════════════════════════════════════════════════════════════════

TOPIC_STOPWORDS: frozenset[str] = frozenset({
    "a", "an", "the", "and", "or", "but", "is", "are", "was", "were", "to", "of", "for",
    "with", "about", "in", "on", "at", "from", "me", "my", "i", "we", "you", "your",
    "their", "this", "that", "these", "those", "it", "its", "how", "what", "when", "where",
    "who", "why", "can", "could", "would", "should", "will", "shall", "may", "might",
    "must", "need", "have", "has", "had", "do", "does", "did", "get", "got", "am",
})

QUESTION_STARTERS: frozenset[str] = frozenset({
    "what", "where", "how", "when", "who", "why", "which", "tell",
})
