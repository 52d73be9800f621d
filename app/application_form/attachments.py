from dataclasses import dataclass

from app.onboarding.models import FileAssetRef, IndiaOnboardingFormSnapshot

MAX_EXPERIENCE_CERTIFICATES = 3


@dataclass(frozen=True)
class AttachmentEntry:
    """A supporting document to append after the filled form."""

    label: str
    asset: FileAssetRef


class AttachmentSelector:
    """Collects supporting documents in a stable, HR-friendly order.

    Order: Aadhaar, PAN, passport (front, back), driver's licence
    (front, back), void cheque, then up to three experience certificates in
    employment-history order. Only PDF/PNG/JPEG assets with a storage key are
    kept, each storage key at most once. The declaration signature is never
    selected; it is drawn into the filled form instead.
    """

    def select(self, snapshot: IndiaOnboardingFormSnapshot) -> list[AttachmentEntry]:
        ids = snapshot.government_ids
        licence = ids.drivers_license
        candidates: list[tuple[str, FileAssetRef | None]] = [
            ("Aadhaar Card", ids.aadhaar.file),
            ("PAN Card", ids.pan_card_file),
            ("Passport (Front)", ids.passport.front_file),
            ("Passport (Back)", ids.passport.back_file),
            ("Driver's License (Front)", licence.front_file if licence else None),
            ("Driver's License (Back)", licence.back_file if licence else None),
            ("Void Cheque", snapshot.bank_details.void_cheque_file),
        ]
        for i, job in enumerate(snapshot.employment_history[:MAX_EXPERIENCE_CERTIFICATES]):
            candidates.append((f"Experience Certificate ({i + 1})", job.experience_certificate_file))

        signature = snapshot.declaration.signature_file
        excluded_keys = {signature.storage_key} if signature and signature.has_key else set()

        selected: list[AttachmentEntry] = []
        seen_keys: set[str] = set()
        for label, asset in candidates:
            if asset is None or not self._is_attachable(asset):
                continue
            if asset.storage_key in seen_keys or asset.storage_key in excluded_keys:
                continue
            seen_keys.add(asset.storage_key)
            selected.append(AttachmentEntry(label=label, asset=asset))
        return selected

    @staticmethod
    def _is_attachable(asset: FileAssetRef) -> bool:
        return asset.has_key and (asset.is_pdf or asset.is_image)
