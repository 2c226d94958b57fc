import json
import os
import tempfile
from pathlib import Path
from typing import Optional, Dict, Any, List
from werkzeug.security import generate_password_hash, check_password_hash

from .models import Pitcher, Outing, PitchLocation, User, DEFAULT_PITCH_TYPES


class StorageError(RuntimeError):
    """A write to the row store failed; nothing was changed"""


class StorageManager:
    def __init__(self, data_dir: str = "data"):
        self.data_dir = Path(data_dir)
        self.pitchers_file = self.data_dir / "pitchers.json"
        self.outings_file = self.data_dir / "outings.json"
        self.pitch_locations_file = self.data_dir / "pitch_locations.json"
        self.users_file = self.data_dir / "users.json"

        # Ensure data directory exists
        self.data_dir.mkdir(parents=True, exist_ok=True)

        # Initialize files if they don't exist
        self._initialize_files()

    def _initialize_files(self):
        """Initialize JSON files with empty collections if they don't exist"""
        for path in (self.pitchers_file, self.outings_file, self.pitch_locations_file, self.users_file):
            if not path.exists():
                self._write_rows(path, [], path.stem)

    def _write_rows(self, path: Path, rows: list, label: str) -> None:
        """Replace a collection file in one step so readers never see a partial write"""
        try:
            fd, tmp_path = tempfile.mkstemp(dir=self.data_dir, prefix=f".{path.stem}.", suffix=".tmp")
            try:
                with os.fdopen(fd, 'w', encoding='utf-8') as f:
                    json.dump(rows, f, indent=2, ensure_ascii=False)
                os.replace(tmp_path, path)
            except BaseException:
                if os.path.exists(tmp_path):
                    os.unlink(tmp_path)
                raise
        except (IOError, OSError, TypeError, ValueError) as e:
            raise StorageError(f"Failed to save {label}: {str(e)}")

    def _read_rows(self, path: Path) -> list:
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, ValueError):
            # Missing, unreadable or not JSON
            return []
        if not isinstance(data, list):
            return []
        return [row for row in data if isinstance(row, dict)]

    # Pitchers
    def load_pitchers(self) -> list:
        return self._read_rows(self.pitchers_file)

    def _save_pitchers(self, pitchers: list) -> None:
        self._write_rows(self.pitchers_file, pitchers, "pitchers")

    def get_all_pitchers(self) -> List[Pitcher]:
        """Get the roster sorted by name, skipping rows that fail validation"""
        pitchers = []
        for row in self.load_pitchers():
            try:
                pitchers.append(Pitcher(**row))
            except (ValueError, TypeError, KeyError):
                continue
        return sorted(pitchers, key=lambda p: p.name.lower())

    def get_pitcher(self, pitcher_id: str) -> Optional[Pitcher]:
        for row in self.load_pitchers():
            if row.get('id') == pitcher_id:
                try:
                    return Pitcher(**row)
                except (ValueError, TypeError, KeyError):
                    return None
        return None

    def get_pitcher_by_name(self, name: str) -> Optional[Pitcher]:
        """Case-insensitive name lookup"""
        if not name:
            return None
        wanted = name.strip().lower()
        for pitcher in self.get_all_pitchers():
            if pitcher.name.lower() == wanted:
                return pitcher
        return None

    def save_pitcher(self, pitcher: Pitcher) -> str:
        """Insert or update a roster entry and return its ID"""
        pitchers = self.load_pitchers()

        for row in pitchers:
            if row.get('id') != pitcher.id and str(row.get('name', '')).strip().lower() == pitcher.name.lower():
                raise StorageError(f"A pitcher named '{pitcher.name}' already exists")

        existing_index = None
        for i, row in enumerate(pitchers):
            if row.get('id') == pitcher.id:
                existing_index = i
                break

        if existing_index is not None:
            pitchers[existing_index] = pitcher.model_dump()
        else:
            pitchers.append(pitcher.model_dump())

        self._save_pitchers(pitchers)
        return pitcher.id

    def rename_pitcher(self, pitcher_id: str, new_name: str) -> Optional[Pitcher]:
        """
        Rename a pitcher and refresh the display name on their outings.

        Outings are joined on pitcher_id, so history stays attached; the
        denormalized name is updated so exports and reports read correctly.
        """
        pitcher = self.get_pitcher(pitcher_id)
        if not pitcher:
            return None
        old_name = pitcher.name
        pitcher.name = new_name.strip()
        self.save_pitcher(pitcher)

        outings = self.load_outings()
        changed = False
        for row in outings:
            if row.get('pitcher_id') == pitcher_id or (not row.get('pitcher_id') and row.get('pitcher_name') == old_name):
                row['pitcher_id'] = pitcher_id
                row['pitcher_name'] = pitcher.name
                changed = True
        if changed:
            self._save_outings(outings)
        return pitcher

    def delete_pitcher(self, pitcher_id: str) -> bool:
        """Remove a roster entry; the pitcher's outing history is kept"""
        pitchers = self.load_pitchers()
        remaining = [p for p in pitchers if p.get('id') != pitcher_id]
        if len(remaining) < len(pitchers):
            self._save_pitchers(remaining)
            return True
        return False

    # Outings
    def load_outings(self) -> list:
        return self._read_rows(self.outings_file)

    def _save_outings(self, outings: list) -> None:
        self._write_rows(self.outings_file, outings, "outings")

    def get_all_outings(self) -> List[Outing]:
        """Get all outings, newest first"""
        outings = []
        for row in self.load_outings():
            try:
                outing = Outing(**row)
            except (ValueError, TypeError, KeyError):
                # Skip invalid outings
                continue
            outings.append(outing)
        return sorted(outings, key=lambda o: (o.date, o.created_at), reverse=True)

    def get_outing(self, outing_id: str) -> Optional[Outing]:
        for row in self.load_outings():
            if row.get('id') == outing_id:
                try:
                    return Outing(**row)
                except (ValueError, TypeError, KeyError):
                    return None
        return None

    def save_outing(self, outing: Outing) -> str:
        """Insert or update an outing and return its ID"""
        outings = self.load_outings()

        existing_index = None
        for i, row in enumerate(outings):
            if row.get('id') == outing.id:
                existing_index = i
                break

        outing_dict = outing.model_dump(mode='json')
        if existing_index is not None:
            outings[existing_index] = outing_dict
        else:
            outings.append(outing_dict)

        self._save_outings(outings)
        return outing.id

    def delete_outing(self, outing_id: str) -> bool:
        """Delete an outing together with its pitch map"""
        outings = self.load_outings()
        remaining = [o for o in outings if o.get('id') != outing_id]
        if len(remaining) == len(outings):
            return False
        self._save_outings(remaining)
        self.delete_pitch_locations_for_outing(outing_id)
        return True

    # Pitch locations
    def load_pitch_locations(self) -> list:
        return self._read_rows(self.pitch_locations_file)

    def _save_pitch_locations(self, rows: list) -> None:
        self._write_rows(self.pitch_locations_file, rows, "pitch locations")

    def _parse_locations(self, rows: list) -> List[PitchLocation]:
        locations = []
        for row in rows:
            try:
                locations.append(PitchLocation(**row))
            except (ValueError, TypeError, KeyError):
                continue
        return locations

    def get_pitch_locations_for_outing(self, outing_id: str) -> List[PitchLocation]:
        rows = [r for r in self.load_pitch_locations() if r.get('outing_id') == outing_id]
        return sorted(self._parse_locations(rows), key=lambda p: p.pitch_number)

    def get_pitch_locations_for_pitcher(
        self,
        pitcher_id: str,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None
    ) -> List[PitchLocation]:
        """Pitcher's plotted pitches in creation order, optionally bounded by date (inclusive)"""
        rows = [r for r in self.load_pitch_locations() if r.get('pitcher_id') == pitcher_id]
        locations = self._parse_locations(rows)
        if start_date:
            locations = [p for p in locations if p.created_at[:10] >= start_date]
        if end_date:
            locations = [p for p in locations if p.created_at[:10] <= end_date]
        return sorted(locations, key=lambda p: (p.created_at, p.outing_id, p.pitch_number))

    def _check_new_locations(self, outing_id: str, pitcher_id: str, locations: List[PitchLocation], existing_rows: list) -> None:
        if self.get_outing(outing_id) is None:
            raise StorageError(f"Outing {outing_id} not found")

        taken = {r.get('pitch_number') for r in existing_rows if r.get('outing_id') == outing_id}
        for location in locations:
            if location.outing_id != outing_id or location.pitcher_id != pitcher_id:
                raise StorageError("Pitch location does not belong to this outing")
            if location.pitch_number in taken:
                raise StorageError(f"Duplicate pitch number {location.pitch_number} for outing {outing_id}")
            taken.add(location.pitch_number)

    def add_pitch_locations(self, outing_id: str, pitcher_id: str, locations: List[PitchLocation]) -> int:
        """
        Append a batch of plotted pitches to an outing.

        All pitches are checked before anything is written and the collection
        is replaced in one step, so either the whole batch is stored or
        StorageError is raised and nothing changes.
        """
        rows = self.load_pitch_locations()
        self._check_new_locations(outing_id, pitcher_id, locations, rows)
        rows.extend(location.model_dump() for location in locations)
        self._save_pitch_locations(rows)
        return len(locations)

    def replace_pitch_locations(self, outing_id: str, pitcher_id: str, locations: List[PitchLocation]) -> int:
        """Swap an outing's pitch map for a new one in a single write"""
        rows = [r for r in self.load_pitch_locations() if r.get('outing_id') != outing_id]
        self._check_new_locations(outing_id, pitcher_id, locations, rows)
        rows.extend(location.model_dump() for location in locations)
        self._save_pitch_locations(rows)
        return len(locations)

    def delete_pitch_locations_for_outing(self, outing_id: str) -> int:
        """Clear one outing's pitch map and return how many pitches were removed"""
        rows = self.load_pitch_locations()
        remaining = [r for r in rows if r.get('outing_id') != outing_id]
        removed = len(rows) - len(remaining)
        if removed:
            self._save_pitch_locations(remaining)
        return removed

    def next_pitch_number(self, outing_id: str) -> int:
        existing = self.get_pitch_locations_for_outing(outing_id)
        return (existing[-1].pitch_number + 1) if existing else 1

    # Pitch type labels
    def get_pitch_types(self, pitcher_id: str) -> Dict[str, str]:
        """Pitch-type labels for a pitcher, or the default taxonomy"""
        pitcher = self.get_pitcher(pitcher_id)
        if pitcher and isinstance(pitcher.pitch_types, dict) and pitcher.pitch_types:
            return dict(pitcher.pitch_types)
        return dict(DEFAULT_PITCH_TYPES)

    def update_pitch_types(self, pitcher_id: str, pitch_types: Dict[str, str]) -> bool:
        pitcher = self.get_pitcher(pitcher_id)
        if not pitcher:
            return False
        pitcher.pitch_types = {str(k): v.strip() for k, v in pitch_types.items()}
        self.save_pitcher(pitcher)
        return True

    # Users
    def _save_users(self, users: list) -> None:
        self._write_rows(self.users_file, users, "users")

    def load_users(self) -> list:
        return self._read_rows(self.users_file)

    def create_user(self, username: str, password: str, email: Optional[str] = None) -> Optional[User]:
        """Create a new coach account; returns None if the username is taken"""
        users = self.load_users()
        for user_data in users:
            if user_data.get('username') == username:
                return None  # Username already exists

        user = User(
            username=username,
            password_hash=generate_password_hash(password),
            email=email
        )
        users.append(user.model_dump())
        self._save_users(users)
        return user

    def get_user_by_username(self, username: str) -> Optional[User]:
        """Get a user by username (case-sensitive exact match)"""
        if not username:
            return None
        username = username.strip()
        for user_data in self.load_users():
            if user_data.get('username', '').strip() == username:
                try:
                    return User(**user_data)
                except (ValueError, TypeError, KeyError):
                    continue
        return None

    def get_user_by_id(self, user_id: str) -> Optional[User]:
        for user_data in self.load_users():
            if user_data.get('id') == user_id:
                try:
                    return User(**user_data)
                except (ValueError, TypeError, KeyError):
                    continue
        return None

    def update_user_password(self, user_id: str, new_password: str) -> bool:
        users = self.load_users()
        for user_data in users:
            if user_data.get('id') == user_id:
                user_data['password_hash'] = generate_password_hash(new_password)
                self._save_users(users)
                return True
        return False

    def verify_password(self, user: User, password: str) -> bool:
        """Verify a user's password"""
        try:
            if not user.password_hash:
                return False
            return check_password_hash(user.password_hash, password)
        except ValueError:
            # Invalid hash format - treat as authentication failure
            return False

    def export_data(self) -> Dict[str, Any]:
        """Export roster, outings and pitch maps (no user accounts)"""
        return {
            'pitchers': self.load_pitchers(),
            'outings': self.load_outings(),
            'pitch_locations': self.load_pitch_locations(),
        }
