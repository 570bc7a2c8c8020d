"""
Static garment taxonomy: categories, their variants and the ordered
measurement keys a tailor needs for each variant.
"""

# Measurement keys shared by several upper-body garments
_UPPER_BODY = [
    "shoulderWidth", "chest", "waist", "hip", "sleeveLength", "armhole",
]

TAXONOMY: list[dict] = [
    {
        "category": "kurti_kameez",
        "label": "Kurti / Kameez",
        "variants": [
            {
                "type": "straight",
                "label": "Straight Cut",
                "measurements": _UPPER_BODY + [
                    "kurtaLength", "frontNeckDepth", "backNeckDepth", "bicep", "wrist",
                ],
            },
            {
                "type": "a_line",
                "label": "A-Line",
                "measurements": _UPPER_BODY + [
                    "kurtaLength", "frontNeckDepth", "backNeckDepth", "sideSeam",
                ],
            },
            {
                "type": "anarkali",
                "label": "Anarkali",
                "measurements": [
                    "shoulderWidth", "bust", "underBust", "waist", "sleeveLength",
                    "armhole", "kurtaLength", "frontNeckDepth", "backNeckDepth",
                ],
            },
        ],
    },
    {
        "category": "blouse",
        "label": "Blouse",
        "variants": [
            {
                "type": "princess_cut",
                "label": "Princess Cut",
                "measurements": [
                    "shoulderWidth", "bust", "underBust", "waist", "armhole",
                    "sleeveLength", "sleeveWidth", "blouseLength", "frontNeckDepth",
                    "backNeckDepth", "bustPointToPoint", "shoulderToBust", "princessLine",
                    "hookPosition",
                ],
            },
            {
                "type": "katori",
                "label": "Katori",
                "measurements": [
                    "shoulderWidth", "bust", "underBust", "waist", "armhole",
                    "sleeveLength", "blouseLength", "frontNeckDepth", "backNeckDepth",
                    "bustPointToPoint", "waistToBust", "bustDart",
                ],
            },
            {
                "type": "padded",
                "label": "Padded",
                "measurements": [
                    "shoulderWidth", "bust", "underBust", "waist", "armhole",
                    "blouseLength", "frontNeckDepth", "backNeckDepth", "hookPosition",
                ],
            },
        ],
    },
    {
        "category": "salwar",
        "label": "Salwar / Churidar",
        "variants": [
            {
                "type": "regular",
                "label": "Regular Salwar",
                "measurements": ["waist", "hip", "pantLength", "bottomRound"],
            },
            {
                "type": "patiala",
                "label": "Patiala",
                "measurements": ["waist", "hip", "pantLength", "kneeRound", "bottomRound"],
            },
            {
                "type": "churidar",
                "label": "Churidar",
                "measurements": [
                    "waist", "hip", "thigh", "kneeRound", "calfRound", "ankleRound",
                    "pantLength",
                ],
            },
        ],
    },
    {
        "category": "shirt",
        "label": "Shirt",
        "variants": [
            {
                "type": "formal",
                "label": "Formal",
                "measurements": _UPPER_BODY + [
                    "neck", "collarHeight", "cuffWidth", "cuffLength", "yokeWidth",
                    "backWidth", "bicep", "wrist",
                ],
            },
            {
                "type": "casual",
                "label": "Casual",
                "measurements": _UPPER_BODY + [
                    "neck", "collarSpread", "pocketPosition", "buttonStance",
                ],
            },
        ],
    },
    {
        "category": "trouser",
        "label": "Trouser",
        "variants": [
            {
                "type": "straight",
                "label": "Straight Fit",
                "measurements": [
                    "waist", "hip", "thigh", "kneeRound", "legOpening", "inseam",
                    "outseam", "riseFront", "riseBack",
                ],
            },
            {
                "type": "tapered",
                "label": "Tapered",
                "measurements": [
                    "waist", "hip", "thigh", "kneeRound", "calfRound", "legOpening",
                    "inseam", "outseam", "crotchDepth",
                ],
            },
        ],
    },
    {
        "category": "lehenga",
        "label": "Lehenga",
        "variants": [
            {
                "type": "flared",
                "label": "Flared",
                "measurements": ["waist", "hip", "pantLength", "waistBand"],
            },
            {
                "type": "mermaid",
                "label": "Mermaid",
                "measurements": ["waist", "hip", "thigh", "kneeRound", "pantLength"],
            },
        ],
    },
]
