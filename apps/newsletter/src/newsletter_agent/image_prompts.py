"""Image-generator prompts for story image slots."""

_STYLE = "--ar 16:9 --v 6"

IMAGE_PROMPTS: dict[str, str] = {
    "stem_cell": "Scientific visualization of stem cells differentiating into healthy tissue, bioluminescent purple and violet glow, medical illustration style, clean composition, hopeful atmosphere, soft lighting",
    "vision": "Abstract visualization of human eye with regenerating retinal cells, golden light rays emanating from iris, medical art style, deep purple and amber colors, hope and healing theme",
    "diabetes": "Microscopic view of healthy pancreatic islet cells producing insulin, warm golden glow radiating from cell clusters, scientific visualization, violet and gold color palette",
    "nutrition": "Elegant flat lay of anti-inflammatory foods on marble surface, salmon, olive oil, colorful berries, turmeric, leafy greens, soft natural lighting, editorial food photography style",
    "clinical_trial": "Modern medical research laboratory, scientists in white coats reviewing data on screens, hopeful atmosphere, clean purple and white aesthetic, soft professional lighting",
    "brain": "Artistic visualization of neural connections and synapses firing, deep purple and electric violet colors, scientific beauty, abstract medical illustration",
    "heart": "Anatomical heart transforming into healthy tissue, red and purple gradient, scientific illustration meets fine art, regeneration theme, dramatic lighting",
    "stats": "Data visualization coming to life, floating numbers and graphs in 3D space, purple holographic style, futuristic medical data concept, clean dark background",
    "general": "Abstract medical breakthrough concept, DNA helix intertwined with healing light, purple and violet gradient, clean modern scientific aesthetic, hopeful atmosphere",
}

# First match wins.
_KEYWORDS: list[tuple[str, tuple[str, ...]]] = [
    ("vision", ("vision", "eye", "amd", "retina")),
    ("diabetes", ("diabetes", "insulin", "pancrea")),
    ("brain", ("brain", "neuro", "parkinson")),
    ("heart", ("heart", "cardio")),
    ("nutrition", ("diet", "food", "nutrition", "inflammatory")),
    ("clinical_trial", ("trial", "study", "research")),
    ("stem_cell", ("stem cell", "regenerat")),
    ("stats", ("stat", "billion", "number", "%")),
]


def image_prompt_for(headline: str, kind: str = "general") -> str:
    """Pick an image prompt from keywords in the headline, else by ``kind``."""
    lowered = headline.lower()
    for name, keywords in _KEYWORDS:
        if any(keyword in lowered for keyword in keywords):
            return f"{IMAGE_PROMPTS[name]} {_STYLE}"
    return f"{IMAGE_PROMPTS.get(kind, IMAGE_PROMPTS['general'])} {_STYLE}"
