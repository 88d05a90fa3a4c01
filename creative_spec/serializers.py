"""Serializers for drafts - camelCase JSON for storage and the remote API."""

from dataclasses import fields
from typing import Any

from .models import (
    AdCopy,
    AssetReference,
    Brief,
    ExportSnapshot,
    IdentityRecord,
    IdentityVerification,
    PreviewSettings,
    UTMParameters,
    VerificationStatus,
)
from .models.brief import SLOT_ROLES

IDENTITY_RECORD_KEYS = ("page_id", "name", "profile_picture", "url", "intro", "website", "categories", "method")


def camel(name: str) -> str:
    """snake_case -> camelCase."""
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def serialize_flat(obj: Any) -> dict:
    """Serialize a dataclass whose fields are all plain values."""
    return {camel(f.name): getattr(obj, f.name) for f in fields(obj)}


def deserialize_flat(cls, data: dict | None):
    """Build a flat dataclass from camelCase data, defaults for missing keys."""
    data = data or {}
    kwargs = {f.name: data[camel(f.name)] for f in fields(cls) if camel(f.name) in data}
    return cls(**kwargs)


# ===== Assets =====

def serialize_asset(asset: AssetReference | None, strip_inline: bool = False) -> dict | None:
    if asset is None:
        return None
    data = {
        "name": asset.name,
        "size": asset.size,
        "type": asset.mime_type,
        "width": asset.width,
        "height": asset.height,
        "aspectRatio": asset.aspect,
        "url": asset.url,
    }
    if asset.inline_data and not strip_inline:
        data["data"] = asset.inline_data
    return data


def deserialize_asset(data: dict | None) -> AssetReference | None:
    if not data or not data.get("name"):
        return None
    return AssetReference(
        name=data["name"],
        size=int(data.get("size") or 0),
        mime_type=data.get("type") or "",
        width=data.get("width"),
        height=data.get("height"),
        aspect=data.get("aspectRatio"),
        url=data.get("url"),
        inline_data=data.get("data"),
    )


# ===== Brief =====

def serialize_brief(brief: Brief, strip_inline: bool = False) -> dict:
    data = {}
    for f in fields(brief):
        if f.name in ("utm", "primary_asset", "assets", "detected_sets"):
            continue
        data[camel(f.name)] = getattr(brief, f.name)
    data["utm"] = serialize_flat(brief.utm)
    data["primaryAsset"] = serialize_asset(brief.primary_asset, strip_inline)
    data["assets"] = {
        role: serialize_asset(asset, strip_inline)
        for role, asset in brief.assets.items()
        if asset is not None
    }
    data["detectedSets"] = list(brief.detected_sets)
    return data


def deserialize_brief(data: dict | None) -> Brief:
    """Merge stored brief data over a default Brief."""
    data = data or {}
    brief = Brief()
    for f in fields(brief):
        key = camel(f.name)
        if f.name in ("utm", "primary_asset", "assets", "detected_sets") or key not in data:
            continue
        setattr(brief, f.name, data[key])
    brief.utm = deserialize_flat(UTMParameters, data.get("utm"))
    brief.primary_asset = deserialize_asset(data.get("primaryAsset"))
    stored_assets = data.get("assets") or {}
    for role in SLOT_ROLES:
        asset = deserialize_asset(stored_assets.get(role))
        if asset is not None:
            brief.assets[role] = asset
    brief.detected_sets = list(data.get("detectedSets") or [])
    return brief


# ===== Ad copy / preview =====

def serialize_ad_copy(ad_copy: AdCopy) -> dict:
    return serialize_flat(ad_copy)


def deserialize_ad_copy(data: dict | None) -> AdCopy:
    return deserialize_flat(AdCopy, data)


def serialize_preview(preview: PreviewSettings) -> dict:
    return serialize_flat(preview)


def deserialize_preview(data: dict | None) -> PreviewSettings:
    return deserialize_flat(PreviewSettings, data)


# ===== Identity =====

def serialize_identity_record(record: IdentityRecord | None) -> dict | None:
    """Flatten back to the page-data shape the API speaks (snake_case keys)."""
    if record is None:
        return None
    data = dict(record.extra)
    for key in IDENTITY_RECORD_KEYS:
        value = getattr(record, key)
        if value not in (None, []):
            data[key] = value
    return data


def deserialize_identity_record(data: dict | None) -> IdentityRecord | None:
    if not isinstance(data, dict):
        return None
    known = {key: data[key] for key in IDENTITY_RECORD_KEYS if data.get(key) is not None}
    extra = {key: value for key, value in data.items() if key not in IDENTITY_RECORD_KEYS}
    categories = known.pop("categories", [])
    return IdentityRecord(
        **known,
        categories=list(categories) if isinstance(categories, list) else [],
        extra=extra,
    )


def serialize_identity(identity: IdentityVerification) -> dict:
    return {
        "status": identity.status.value,
        "data": serialize_identity_record(identity.data),
        "error": identity.error,
    }


def deserialize_identity(data: dict | None) -> IdentityVerification:
    data = data or {}
    try:
        status = VerificationStatus(data.get("status", VerificationStatus.UNATTEMPTED.value))
    except ValueError:
        status = VerificationStatus.UNATTEMPTED
    # A verification in flight when persisted never completed
    if status == VerificationStatus.PENDING:
        status = VerificationStatus.UNATTEMPTED
    return IdentityVerification(
        status=status,
        data=deserialize_identity_record(data.get("data")),
        error=data.get("error"),
    )


# ===== Export =====

def serialize_export_snapshot(snapshot: ExportSnapshot) -> dict:
    """JSON document written to the bundle and sent with remote saves."""
    meta = snapshot.meta
    return {
        "refName": snapshot.ref_name,
        "adName": snapshot.ad_name,
        "postText": snapshot.post_text,
        "headline": snapshot.headline,
        "description": snapshot.description,
        "destinationUrl": snapshot.destination_url,
        "trackedUrl": snapshot.tracked_url,
        "displayLink": snapshot.display_link,
        "cta": snapshot.cta,
        "imageName": snapshot.image_name,
        "identityLink": snapshot.identity_link,
        "platform": snapshot.platform,
        "device": snapshot.device,
        "adType": snapshot.ad_type,
        "adFormat": snapshot.ad_format,
        "flightStartDate": snapshot.flight_start_date,
        "flightEndDate": snapshot.flight_end_date,
        "assets": {
            role: serialize_asset(asset, strip_inline=True)
            for role, asset in snapshot.assets.items()
        },
        "meta": {
            "company": meta.company,
            "companyInfo": meta.company_info,
            "objective": meta.objective,
            "customPrompt": meta.custom_prompt,
            "formula": meta.formula,
            "identityLink": meta.identity_link,
            "url": meta.url,
            "notes": meta.notes,
            "identityData": serialize_identity_record(meta.identity_data),
            "identityMethod": meta.identity_method,
        },
    }
