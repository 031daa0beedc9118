"""Normalization of supplier hotel static content (/hotel/info/)."""
from typing import List, Optional

IMAGE_SIZE = "1024x768"


def extract_description(data: dict) -> Optional[str]:
    """Join every paragraph of description_struct; fall back to the plain description."""
    paragraphs: List[str] = []
    for section in data.get("description_struct") or []:
        paragraphs.extend(section.get("paragraphs") or [])
    if paragraphs:
        return "\n\n".join(paragraphs)
    return data.get("description") or None


def normalize_images(data: dict) -> List[dict]:
    images = []
    for index, img in enumerate(data.get("images") or [], start=1):
        if isinstance(img, str):
            url = img
        else:
            url = img.get("tmpl") or img.get("source") or img.get("url") or ""
        url = url.replace("{size}", IMAGE_SIZE)
        if url:
            images.append({"url": url, "alt": f"Hotel image {index}"})
    return images


def format_deposits(metapolicy: Optional[dict]) -> List[str]:
    """E.g. "123 EUR in cash per room for the entire stay"."""
    deposits = []
    for dep in (metapolicy or {}).get("deposit") or []:
        parts = []
        if dep.get("deposit_amount"):
            parts.append(str(dep["deposit_amount"]))
        if dep.get("currency"):
            parts.append(dep["currency"])
        if dep.get("payment_type"):
            parts.append(f"in {dep['payment_type']}")
        if dep.get("availability"):
            parts.append(f"per {dep['availability']}")
        if dep.get("price_unit"):
            parts.append(f"for {dep['price_unit'].replace('_', ' ')}")
        if parts:
            deposits.append(" ".join(parts))
    return deposits


def check_times(data: dict) -> tuple:
    times = (data.get("metapolicy_struct") or {}).get("check_in_check_out") or {}
    return (
        times.get("check_in_time") or data.get("check_in_time"),
        times.get("check_out_time") or data.get("check_out_time"),
    )


def build_hotel_info(hid: int, data: dict, description: Optional[str] = None) -> dict:
    metapolicy = data.get("metapolicy_struct")
    check_in_time, check_out_time = check_times(data)
    return {
        "hid": hid,
        "name": data.get("name"),
        "address": data.get("address"),
        "phone": data.get("phone"),
        "description": description if description is not None else extract_description(data),
        "description_struct": data.get("description_struct"),
        "images": normalize_images(data),
        "amenities": data.get("amenity_groups"),
        "deposits": format_deposits(metapolicy),
        "check_in_time": check_in_time,
        "check_out_time": check_out_time,
        "metapolicy": metapolicy,
    }


def empty_hotel_info(hid: int) -> dict:
    return {"hid": hid, "description": None, "images": [], "deposits": []}
