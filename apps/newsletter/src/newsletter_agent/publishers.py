"""Friendly publisher names for article URLs."""

from urllib.parse import urlparse

PUBLISHER_NAMES: dict[str, str] = {
    "sciencedaily.com": "ScienceDaily",
    "nature.com": "Nature",
    "cell.com": "Cell",
    "stemcells.nih.gov": "NIH Stem Cell",
    "nih.gov": "NIH",
    "pubmed.ncbi.nlm.nih.gov": "PubMed",
    "statnews.com": "STAT News",
    "healthline.com": "Healthline",
    "webmd.com": "WebMD",
    "cnn.com": "CNN Health",
    "nytimes.com": "New York Times",
    "mayoclinic.org": "Mayo Clinic",
    "newsnetwork.mayoclinic.org": "Mayo Clinic",
    "biospace.com": "BioSpace",
    "longevity.technology": "Longevity Technology",
    "lifespan.io": "Lifespan.io",
    "fightaging.org": "Fight Aging!",
    "healthrising.org": "Health Rising",
    "medicalnewstoday.com": "Medical News Today",
    "npr.org": "NPR",
}


def hostname_of(url: str) -> str:
    """Lower-cased hostname without a leading ``www.``; empty if unparseable."""
    if not isinstance(url, str):
        return ""
    try:
        host = urlparse(url).hostname or ""
    except ValueError:
        return ""
    return host[4:] if host.startswith("www.") else host


def publisher_name(url: str, fallback: str = "") -> str:
    """Map an article URL to a publisher name.

    Known hosts use the curated table; anything else uses the capitalised
    first label of the hostname (``example.org`` -> ``Example``).
    """
    host = hostname_of(url)
    if not host:
        return fallback
    if host in PUBLISHER_NAMES:
        return PUBLISHER_NAMES[host]
    label = host.split(".")[0]
    return label[:1].upper() + label[1:]
