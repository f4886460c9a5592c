"""Lookup tables for numeric codes stored in the source lead table."""

import re

_NUMERIC = re.compile(r"^\d+$")

STATUS_CODES: dict[str, str] = {
    "1": "Follow-up 1",
    "2": "Follow-up 2",
    "3": "Follow-up 3",
    "4": "DNP-1",
    "5": "DNP-2",
    "6": "DNP-3",
    "7": "DNP-4",
    "8": "DNP-5",
    "9": "DNP Exhausted",
    "10": "Fund Issues",
    "11": "OPD Done",
    "12": "OPD Schedule",
    "13": "IPD Done",
    "14": "IPD Schedule",
    "15": "IPD Lost",
    "16": "Out of Station",
    "17": "Supply Gap",
    "18": "Language Barrier",
    "19": "Call Back (SD)",
    "20": "Call Back (T)",
    "21": "Call Back Next Week",
    "22": "Call Back Next Month",
    "23": "SX Not Suggested",
    "24": "Order Booked",
    "25": "Closed",
    "26": "Junk",
    "27": "New Lead",
    "28": "Hot Lead",
    "29": "Scan Done",
    "30": "Call Done",
    "31": "WA Done",
    "32": "C/W Done",
    "33": "Not Interested",
    "34": "Duplicate lead",
    "35": "Follow-up",
    "36": "Invalid Number",
    "37": "Nurture",
    "38": "Policy Booked",
    "39": "Interested",
    "40": "Policy Issued",
    "41": "Already Insured",
    "42": "Out of station follow-up",
}

SOURCE_CODES: dict[str, str] = {
    "1": "Facebook",
    "2": "Google",
    "3": "Mixone",
    "4": "Meta Marketplace",
    "5": "LinkedIn",
    "6": "Referral",
    "7": "Competitor-C1",
    "8": "Competitor-C",
    "9": "ProData",
    "10": "In bound call",
    "11": "Instagram",
    "12": "Organic-Lead",
    "13": "Competitor-Ads-1",
    "14": "Competitor-Ads-2",
    "15": "Pro-Data-2",
    "16": "Insurance",
    "17": "Google Ads",
    "18": "GP-AK-321",
    "19": "SP182",
    "20": "KVS290",
    "21": "Offline",
    "22": "Test",
    "23": "Pt. Referral",
}

# Campaign ids that were stored in lead.Source by mistake
LEGACY_CAMPAIGN_SOURCES: dict[str, str] = {
    "58": "Dr. Sahil (campaign)",
}

# Status ids that were stored in lead.Source by mistake (Closed, New Lead, Hot Lead)
LEGACY_STATUS_SOURCES = frozenset({"25", "27", "28"})

TREATMENT_CODES: dict[str, str] = {
    "1": "Gynecomastia",
    "2": "Varicose Veins",
    "3": "Lipoma",
    "4": "Tummy Tuck",
    "5": "Breast Lump",
    "6": "Buccal Fat",
    "7": "Breast Lift",
    "8": "Breast Reduction",
    "9": "Rhinoplasty",
    "10": "Piles",
    "11": "Fistula",
    "12": "Fissure",
    "13": "Pilonidal Sinus",
    "14": "Hernia",
    "15": "Gallstone",
    "16": "Appendicitis",
    "17": "Inguinal Hernia",
    "18": "Umbilical Hernia",
    "19": "MTP",
    "20": "Uterus Removal",
    "21": "Tympanoplasty",
    "22": "Adenoidectomy",
    "23": "Sinus",
    "24": "Mastoidectomy",
    "25": "Throat Surgery",
    "26": "Ear Surgery",
    "27": "Vocal Cord Polyps",
    "28": "Nasal Polyps",
    "29": "Turbinate Reduction",
    "30": "Circumcision",
    "31": "Stapler Circumcision",
    "32": "Kidney Stones",
    "33": "Hydrocele",
    "34": "ESWL",
    "35": "RIRS",
    "36": "PCNL",
    "37": "URSL",
    "38": "Enlarged Prostate",
    "39": "Varicocele",
    "40": "DVT Treatment",
    "41": "Diabetic Foot Ulcer",
    "42": "Uterine Fibroids",
    "43": "Breast Lift Surgery",
    "44": "Sebaceous Cyst",
    "45": "Breast Augmentation",
    "46": "Axillary Breast",
    "47": "Double Chin",
    "48": "Earlobe Repair",
    "49": "Blepharoplasty",
    "50": "Beard Transplant",
    "51": "Cleft Lip",
    "52": "Knee Replacement",
    "53": "Carpal Tunnel Syndrome",
    "54": "ACL Tear",
    "55": "Meniscus Tear Treatment",
    "56": "Hip Replacement Surgery",
    "57": "Spine Surgery",
    "58": "Shoulder Dislocation",
    "59": "Shoulder Replacement",
    "60": "Lasik Eye",
    "61": "Cataract",
    "62": "Retinal Detachment",
    "63": "Glaucoma Treatment",
    "64": "Squint",
    "65": "Diabetic Retinopathy",
    "66": "Vitrectomy",
    "67": "PRK Lasik",
    "68": "SMILE Lasik",
    "69": "FEMTO Lasik",
    "70": "ICL",
    "71": "Contoura Vision",
    "72": "Phaco Surgery",
    "73": "Bariatric",
    "74": "SPATZ intragastric balloon",
    "75": "Weightloss",
    "76": "Liposuction",
    "77": "Balanoposthitis",
    "78": "Balanitis",
    "79": "Cyst on Scrotum",
    "80": "Penile Cyst",
    "81": "Phimosis",
    "82": "Excess Body Fat",
    "83": "Nasal Deformity",
    "84": "Obesity",
    "85": "Stent removal",
    "86": "Gallstones",
    "87": "NA",
    "88": "Hair Loss",
    "89": "Foreskin Problem",
    "90": "Tight Foreskin",
    "91": "Ganglion Cyst",
    "92": "Ankle Arthroscopy",
    "93": "Joint Replacement",
    "94": "Urine Infection",
    "95": "Chest wall lump",
    "96": "Abdominal Wall Repair",
    "97": "Cystostomy",
    "98": "Deviated Nasal Septum (Septoplasty)",
    "99": "Medical Management",
    "100": "Nasal sinus",
    "101": "Hysterectomy",
    "102": "Penis infection",
    "103": "Cystoscopy",
}

CIRCLES = ("North", "South", "East", "West", "Central")


def is_numeric_code(value: str | None) -> bool:
    return bool(value) and bool(_NUMERIC.match(str(value).strip()))


def map_status_code(code: str | None) -> str | None:
    """Map a numeric status id to its label; text statuses pass through."""
    if not code:
        return None
    trimmed = str(code).strip()
    if is_numeric_code(trimmed):
        return STATUS_CODES.get(trimmed, trimmed)
    return trimmed


def map_treatment_code(code: str | int | None) -> str | None:
    """Map a numeric treatment id to its name; text treatments pass through."""
    if code is None:
        return None
    trimmed = str(code).strip()
    if not trimmed:
        return None
    if is_numeric_code(trimmed):
        return TREATMENT_CODES.get(trimmed, trimmed)
    return trimmed


def normalize_source(value: str | None) -> str:
    """
    Resolve lead.Source to a label.

    Order: source table, legacy campaign ids, legacy status ids. Any other
    numeric value is Unknown rather than a guess; text passes through.
    """
    if value is None or not str(value).strip():
        return "Unknown"
    trimmed = str(value).strip()
    if trimmed in SOURCE_CODES:
        return SOURCE_CODES[trimmed]
    if trimmed in LEGACY_CAMPAIGN_SOURCES:
        return LEGACY_CAMPAIGN_SOURCES[trimmed]
    if trimmed in LEGACY_STATUS_SOURCES or is_numeric_code(trimmed):
        return "Unknown"
    return trimmed


def normalize_circle(value: str | None) -> str | None:
    """Match a free-text circle to a known circle name, or None."""
    if not value:
        return None
    normalized = value.strip().upper()
    for circle in CIRCLES:
        if circle.upper() == normalized:
            return circle
    return None
