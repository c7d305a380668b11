"""
Identity Service - voter names and the devices that use them

A voter is identified by (name, device) rather than by an account. This
service remembers which names each device has used and spots names that look
like ones already taken, so returning voters keep voting under the same name.
"""

from datetime import datetime, timezone
from typing import Dict, List, Optional
import logging

from rapidfuzz.distance import Levenshtein
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from movie_poll.models.user_device import UserDevice
from movie_poll.models.vote import Vote

logger = logging.getLogger(__name__)

# Similarity needed to ask "is this you?" against names used on this device
DEVICE_MATCH_THRESHOLD = 0.8
# Similarity needed to suggest "did you mean" against all voter names
SUGGESTION_THRESHOLD = 0.6
# Below this, two names are treated as unrelated
SIMILARITY_FLOOR = 0.3
NICKNAME_SIMILARITY = 0.8
NICKNAME_MIN_LENGTH = 3


def normalize_name(name: str) -> str:
    return name.strip().casefold()


def name_similarity(name1: str, name2: str) -> float:
    """
    Similarity between two display names, from 0.0 to 1.0.

    - 1.0 when equal after trimming and case folding
    - 0.8 when one contains the other and the shorter has 3+ characters
    - otherwise 1 - edit distance / longer length, or 0.0 below 0.3
    """
    n1 = normalize_name(name1)
    n2 = normalize_name(name2)

    if n1 == n2:
        return 1.0

    shorter, longer = sorted((n1, n2), key=len)
    if len(shorter) >= NICKNAME_MIN_LENGTH and shorter in longer:
        return NICKNAME_SIMILARITY

    max_len = max(len(n1), len(n2))
    if max_len == 0:
        return 0.0

    similarity = 1.0 - Levenshtein.distance(n1, n2) / max_len
    if similarity < SIMILARITY_FLOOR:
        return 0.0
    return similarity


class IdentityService:
    """Service for device names and name matching"""

    @staticmethod
    def get_device_names(db: Session, device_id: str) -> List[str]:
        """Names used on a device, most recently used first"""
        rows = db.query(UserDevice.user_name).filter(
            UserDevice.device_id == device_id
        ).order_by(
            UserDevice.last_seen.desc(), UserDevice.id.desc()
        ).all()
        return [row.user_name for row in rows]

    @staticmethod
    def get_most_recent_name(db: Session, device_id: str) -> Optional[str]:
        names = IdentityService.get_device_names(db, device_id)
        return names[0] if names else None

    @staticmethod
    def get_voter_names(db: Session) -> List[str]:
        """Every distinct name that has cast at least one vote"""
        rows = db.query(Vote.user_name).filter(
            Vote.user_name != ""
        ).distinct().order_by(Vote.user_name).all()
        return [row.user_name for row in rows]

    @staticmethod
    def find_similar_names(db: Session, name: str, threshold: float = SUGGESTION_THRESHOLD) -> List[str]:
        """Voter names at least `threshold` similar to `name`"""
        return [
            voter_name
            for voter_name in IdentityService.get_voter_names(db)
            if name_similarity(name, voter_name) >= threshold
        ]

    @staticmethod
    def remember_device_name(db: Session, device_id: str, user_name: str) -> UserDevice:
        """
        Record that a device uses a name, or refresh its last_seen if already known.
        Supports several names per device.
        """
        now = datetime.now(timezone.utc)
        entry = db.query(UserDevice).filter(
            UserDevice.device_id == device_id,
            UserDevice.user_name == user_name
        ).first()

        if entry:
            entry.last_seen = now
        else:
            entry = UserDevice(device_id=device_id, user_name=user_name, last_seen=now)
            db.add(entry)

        try:
            db.commit()
        except IntegrityError:
            # Another request registered the same pair first
            db.rollback()
            entry = db.query(UserDevice).filter(
                UserDevice.device_id == device_id,
                UserDevice.user_name == user_name
            ).one()
            entry.last_seen = now
            db.commit()

        db.refresh(entry)
        return entry

    @staticmethod
    def touch_device(db: Session, device_id: str, user_name: Optional[str] = None) -> None:
        """
        Update last_seen for a device (only the given name's entry when set).
        Does not commit.
        """
        query = db.query(UserDevice).filter(UserDevice.device_id == device_id)
        if user_name is not None:
            query = query.filter(UserDevice.user_name == user_name)
        query.update({UserDevice.last_seen: datetime.now(timezone.utc)}, synchronize_session=False)

    @staticmethod
    def check_name(db: Session, name: str, device_id: str) -> Dict:
        """
        Decide how to treat a name a voter typed in.

        A close match among the device's own names asks the voter to pick
        one of them; otherwise similar names from other voters are offered
        as suggestions. Lookup failures degrade to "new" instead of failing.
        """
        try:
            device_names = IdentityService.get_device_names(db, device_id)
            scored = [(name_similarity(name, existing), existing) for existing in device_names]
            # max() keeps the first (most recent) name on ties
            best = max(scored, key=lambda item: item[0], default=None)
            if best is not None and best[0] >= DEVICE_MATCH_THRESHOLD:
                return {
                    "status": "existing",
                    "device_names": device_names,
                    "closest_match": best[1],
                    "similarity": round(best[0], 2),
                }

            similar_names = IdentityService.find_similar_names(db, name)
        except SQLAlchemyError as e:
            db.rollback()
            logger.warning(f"Name lookup failed for device {device_id}, treating name as new: {str(e)}")
            return {"status": "new"}

        if similar_names:
            return {"status": "similar", "similar_names": similar_names}

        return {"status": "new"}
