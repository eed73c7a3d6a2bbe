"""
Database queries and operations
"""
from contextlib import asynccontextmanager
from typing import Optional, List, Dict, Any, Tuple, Union
from datetime import datetime, date, timedelta
import asyncio
import logging
import math

from chad.database.models import MessageRole, UserPreference
from chad.exceptions import NotFoundError, ValidationError

logger = logging.getLogger(__name__)

# meal_logs column -> daily_stats column
TOTAL_FIELDS = {
    "calories": "total_calories",
    "protein_g": "total_protein_g",
    "carbs_g": "total_carbs_g",
    "fats_g": "total_fats_g"
}
MEAL_UPDATE_FIELDS = ("meal_name", "calories", "protein_g", "carbs_g", "fats_g", "logged_at", "context")
TOTALS_TOLERANCE = 1e-6


def day_of(value: Union[str, datetime, date, None]) -> date:
    """Calendar date of a logged_at value (ISO string, datetime or date)"""
    if value is None:
        return date.today()
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def _day_bounds(day: date) -> Tuple[str, str]:
    start_datetime = datetime.combine(day, datetime.min.time())
    end_datetime = datetime.combine(day, datetime.max.time())
    return start_datetime.isoformat(), end_datetime.isoformat()


def _macros(row: Dict) -> Dict[str, float]:
    return {field: row.get(field, 0) or 0 for field in TOTAL_FIELDS}


class DatabaseQueries:
    """Queries against the Supabase tables"""

    def __init__(self, supabase_client):
        self.client = supabase_client
        # read-modify-write on daily_stats is serialized per (user, date).
        # Each entry is [lock, holders] and is dropped when the last holder leaves.
        self._totals_locks: Dict[Tuple[Any, date], List] = {}

    # ===== USERS =====
    async def get_or_create_user(self, telegram_id: int, username: str = None, first_name: str = None) -> Dict:
        """Get or create a Telegram user"""
        result = self.client.table("users").select("*").eq("telegram_id", telegram_id).execute()

        if result.data:
            return result.data[0]

        user_data = {
            "telegram_id": telegram_id,
            "username": username,
            "first_name": first_name
        }
        result = self.client.table("users").insert(user_data).execute()
        logger.info(f"Created user for telegram id {telegram_id}")
        return result.data[0]

    # ===== USER PROFILES =====
    async def get_user_profile(self, user_id: int) -> Optional[Dict]:
        """Get the user's profile"""
        result = self.client.table("user_profiles").select("*").eq("user_id", user_id).execute()
        return result.data[0] if result.data else None

    async def create_user_profile(self, profile_data: Dict) -> Dict:
        """Create the user's profile"""
        result = self.client.table("user_profiles").insert(profile_data).execute()
        return result.data[0]

    async def mark_onboarding_complete(self, user_id: int) -> bool:
        """
        Flip onboarding_complete to true. Never writes false.

        Returns:
            True if this call flipped the flag
        """
        profile = await self.get_user_profile(user_id)
        if not profile or profile.get("onboarding_complete"):
            return False

        self.client.table("user_profiles").update({"onboarding_complete": True}).eq("user_id", user_id).execute()
        logger.info(f"Onboarding complete for user {user_id}")
        return True

    # ===== MESSAGES =====
    async def save_message(self, user_id: int, role: MessageRole, content: str) -> Dict:
        """Append one chat message"""
        result = self.client.table("messages").insert({
            "user_id": user_id,
            "role": MessageRole(role).value,
            "content": content,
            "created_at": datetime.now().isoformat()
        }).execute()
        return result.data[0]

    async def get_messages(self, user_id: int, limit: Optional[int] = None) -> List[Dict]:
        """Chat history in insertion order, optionally only the last `limit` messages"""
        query = self.client.table("messages").select("*").eq("user_id", user_id)

        if limit is None:
            return query.order("id", desc=False).execute().data

        result = query.order("id", desc=True).limit(limit).execute()
        return list(reversed(result.data))

    # ===== MEAL LOGS =====
    async def create_meal_log(
        self,
        user_id: int,
        meal_name: str,
        calories: float = 0,
        protein_g: float = 0,
        carbs_g: float = 0,
        fats_g: float = 0,
        logged_at: Optional[str] = None,
        context: Optional[str] = None,
        message_id: Optional[int] = None
    ) -> Dict:
        """Insert a meal and add it to that day's totals"""
        log_data = {
            "user_id": user_id,
            "message_id": message_id,
            "meal_name": meal_name,
            "calories": calories or 0,
            "protein_g": protein_g or 0,
            "carbs_g": carbs_g or 0,
            "fats_g": fats_g or 0,
            "logged_at": logged_at or datetime.now().isoformat(),
            "context": context
        }
        result = self.client.table("meal_logs").insert(log_data).execute()
        meal = result.data[0]

        await self._apply_totals_delta(user_id, day_of(meal["logged_at"]), _macros(meal), 1)
        logger.info(f"Logged meal {meal.get('id')} for user {user_id}: {meal_name[:40]}")
        return meal

    async def get_meal_log(self, meal_id: int, user_id: int) -> Dict:
        """Get a meal owned by the user"""
        result = self.client.table("meal_logs").select("*").eq("id", meal_id).eq("user_id", user_id).execute()
        if not result.data:
            raise NotFoundError(f"Meal {meal_id} not found")
        return result.data[0]

    async def get_meal_logs_by_date(self, user_id: int, day: date) -> List[Dict]:
        """Meals logged on a day, oldest first"""
        start, end = _day_bounds(day)
        result = self.client.table("meal_logs").select("*")\
            .eq("user_id", user_id)\
            .gte("logged_at", start)\
            .lte("logged_at", end)\
            .order("logged_at", desc=False)\
            .execute()
        return result.data

    async def update_meal_log(self, meal_id: int, user_id: int, **fields) -> Dict:
        """
        Edit a meal and move its macros between daily totals.

        The old values come off the old entry's day and the new values go
        onto the new entry's day, so changing logged_at moves the meal too.
        """
        unknown = set(fields) - set(MEAL_UPDATE_FIELDS)
        if unknown:
            raise ValidationError(f"Cannot update meal fields: {', '.join(sorted(unknown))}")

        old_meal = await self.get_meal_log(meal_id, user_id)
        changes = {key: value for key, value in fields.items() if value is not None or key == "context"}
        for field in TOTAL_FIELDS:
            if field in changes:
                changes[field] = changes[field] or 0

        result = self.client.table("meal_logs").update(changes).eq("id", meal_id).eq("user_id", user_id).execute()
        new_meal = result.data[0]

        old_day = day_of(old_meal["logged_at"])
        new_day = day_of(new_meal["logged_at"])
        old_values = _macros(old_meal)
        new_values = _macros(new_meal)

        if old_day == new_day:
            delta = {field: new_values[field] - old_values[field] for field in TOTAL_FIELDS}
            await self._apply_totals_delta(user_id, old_day, delta, 0)
        else:
            await self._apply_totals_delta(user_id, old_day, {k: -v for k, v in old_values.items()}, -1)
            await self._apply_totals_delta(user_id, new_day, new_values, 1)

        return new_meal

    async def delete_meal_log(self, meal_id: int, user_id: int) -> Dict:
        """Delete a meal and take it off that day's totals"""
        meal = await self.get_meal_log(meal_id, user_id)

        self.client.table("meal_logs").delete().eq("id", meal_id).eq("user_id", user_id).execute()

        await self._apply_totals_delta(
            user_id,
            day_of(meal["logged_at"]),
            {k: -v for k, v in _macros(meal).items()},
            -1
        )
        logger.info(f"Deleted meal {meal_id} for user {user_id}")
        return meal

    # ===== DAILY STATS =====
    async def get_daily_stats(self, user_id: int, day: date) -> Optional[Dict]:
        """Running totals row for a day"""
        result = self.client.table("daily_stats").select("*")\
            .eq("user_id", user_id)\
            .eq("date", day.isoformat())\
            .execute()
        return result.data[0] if result.data else None

    @asynccontextmanager
    async def _totals_lock(self, user_id: int, day: date):
        key = (user_id, day)
        entry = self._totals_locks.setdefault(key, [asyncio.Lock(), 0])
        entry[1] += 1
        try:
            async with entry[0]:
                yield
        finally:
            entry[1] -= 1
            if entry[1] == 0:
                del self._totals_locks[key]

    async def _apply_totals_delta(self, user_id: int, day: date, delta: Dict[str, float], meals_delta: int) -> None:
        """Add a delta to a day's totals, clamped at zero, creating the row if needed"""
        async with self._totals_lock(user_id, day):
            existing = await self.get_daily_stats(user_id, day)

            if existing:
                updates = {
                    column: max(0, (existing.get(column, 0) or 0) + delta.get(field, 0))
                    for field, column in TOTAL_FIELDS.items()
                }
                updates["meals_logged"] = max(0, (existing.get("meals_logged", 0) or 0) + meals_delta)
                updates["updated_at"] = datetime.now().isoformat()
                self.client.table("daily_stats").update(updates).eq("id", existing["id"]).execute()
            elif meals_delta > 0:
                row = {column: max(0, delta.get(field, 0)) for field, column in TOTAL_FIELDS.items()}
                row.update({
                    "user_id": user_id,
                    "date": day.isoformat(),
                    "meals_logged": meals_delta
                })
                self.client.table("daily_stats").insert(row).execute()
            else:
                logger.warning(f"No daily_stats row for user {user_id} on {day} to subtract from")

    async def recompute_daily_totals(self, user_id: int, day: date) -> Dict[str, float]:
        """Totals recomputed from the surviving meals of a day"""
        meals = await self.get_meal_logs_by_date(user_id, day)
        totals = {column: 0 for column in TOTAL_FIELDS.values()}
        for meal in meals:
            for field, value in _macros(meal).items():
                totals[TOTAL_FIELDS[field]] += value
        totals["meals_logged"] = len(meals)
        return totals

    async def verify_daily_totals(self, user_id: int, day: date) -> bool:
        """Check the incrementally maintained row against a recomputation"""
        expected = await self.recompute_daily_totals(user_id, day)
        stored = await self.get_daily_stats(user_id, day) or {}

        for column, value in expected.items():
            if not math.isclose(stored.get(column, 0) or 0, value, abs_tol=TOTALS_TOLERANCE):
                logger.error(f"daily_stats drift for user {user_id} on {day}: {column} "
                             f"stored={stored.get(column)} expected={value}")
                return False
        return True

    # ===== WATER / EXERCISE / WEIGHT =====
    async def create_water_log(self, user_id: int, ounces: float, logged_at: Optional[str] = None) -> Dict:
        result = self.client.table("water_logs").insert({
            "user_id": user_id,
            "ounces": ounces,
            "logged_at": logged_at or datetime.now().isoformat()
        }).execute()
        return result.data[0]

    async def get_water_logs_by_date(self, user_id: int, day: date) -> List[Dict]:
        start, end = _day_bounds(day)
        result = self.client.table("water_logs").select("*")\
            .eq("user_id", user_id)\
            .gte("logged_at", start)\
            .lte("logged_at", end)\
            .order("logged_at", desc=False)\
            .execute()
        return result.data

    async def create_exercise_log(self, user_id: int, exercise: Dict, logged_at: Optional[str] = None) -> Dict:
        result = self.client.table("exercise_logs").insert({
            "user_id": user_id,
            "exercise_name": exercise["exercise_name"],
            "exercise_type": exercise.get("exercise_type") or "other",
            "duration_minutes": exercise.get("duration_minutes", 0),
            "calories_burned": exercise.get("calories_burned", 0),
            "logged_at": logged_at or datetime.now().isoformat()
        }).execute()
        return result.data[0]

    async def get_exercise_logs_by_date(self, user_id: int, day: date) -> List[Dict]:
        start, end = _day_bounds(day)
        result = self.client.table("exercise_logs").select("*")\
            .eq("user_id", user_id)\
            .gte("logged_at", start)\
            .lte("logged_at", end)\
            .order("logged_at", desc=False)\
            .execute()
        return result.data

    async def create_weight_log(
        self,
        user_id: int,
        weight_lbs: float,
        body_fat: Optional[float] = None,
        notes: Optional[str] = None,
        logged_at: Optional[str] = None
    ) -> Dict:
        result = self.client.table("weight_logs").insert({
            "user_id": user_id,
            "weight_lbs": weight_lbs,
            "body_fat": body_fat,
            "notes": notes,
            "logged_at": logged_at or datetime.now().isoformat()
        }).execute()
        return result.data[0]

    async def get_recent_weight_logs(self, user_id: int, days: int = 7) -> List[Dict]:
        """Weight entries from the last `days` days, newest first"""
        since = datetime.now() - timedelta(days=days)
        result = self.client.table("weight_logs").select("*")\
            .eq("user_id", user_id)\
            .gte("logged_at", since.isoformat())\
            .order("logged_at", desc=True)\
            .limit(days)\
            .execute()
        return result.data

    async def _get_owned_log(self, table: str, log_id: int, user_id: int) -> Dict:
        result = self.client.table(table).select("*").eq("id", log_id).eq("user_id", user_id).execute()
        if not result.data:
            raise NotFoundError(f"{table} entry {log_id} not found")
        return result.data[0]

    async def _update_owned_log(self, table: str, log_id: int, user_id: int, changes: Dict) -> Dict:
        await self._get_owned_log(table, log_id, user_id)
        result = self.client.table(table).update(changes).eq("id", log_id).eq("user_id", user_id).execute()
        logger.info(f"Updated {table} entry {log_id} for user {user_id}")
        return result.data[0]

    async def _delete_owned_log(self, table: str, log_id: int, user_id: int) -> Dict:
        row = await self._get_owned_log(table, log_id, user_id)
        self.client.table(table).delete().eq("id", log_id).eq("user_id", user_id).execute()
        logger.info(f"Deleted {table} entry {log_id} for user {user_id}")
        return row

    async def update_water_log(self, log_id: int, user_id: int, ounces: float) -> Dict:
        return await self._update_owned_log("water_logs", log_id, user_id, {"ounces": ounces})

    async def delete_water_log(self, log_id: int, user_id: int) -> Dict:
        return await self._delete_owned_log("water_logs", log_id, user_id)

    async def update_exercise_log(self, log_id: int, user_id: int, exercise: Dict) -> Dict:
        return await self._update_owned_log("exercise_logs", log_id, user_id, {
            "exercise_name": exercise["exercise_name"],
            "exercise_type": exercise.get("exercise_type") or "other",
            "duration_minutes": exercise.get("duration_minutes", 0),
            "calories_burned": exercise.get("calories_burned", 0)
        })

    async def delete_exercise_log(self, log_id: int, user_id: int) -> Dict:
        return await self._delete_owned_log("exercise_logs", log_id, user_id)

    async def update_weight_log(self, log_id: int, user_id: int, weight_lbs: float, notes: Optional[str] = None) -> Dict:
        """Body fat recorded with the entry is left as it was"""
        return await self._update_owned_log("weight_logs", log_id, user_id, {
            "weight_lbs": weight_lbs,
            "notes": notes
        })

    async def delete_weight_log(self, log_id: int, user_id: int) -> Dict:
        return await self._delete_owned_log("weight_logs", log_id, user_id)

    # ===== PREFERENCES =====
    async def get_preference(self, user_id: int, key: str) -> Optional[Dict]:
        result = self.client.table("user_preferences").select("*")\
            .eq("user_id", user_id)\
            .eq("preference_key", key)\
            .execute()
        return result.data[0] if result.data else None

    async def save_preference(self, user_id: int, pref: UserPreference) -> Dict:
        """Upsert by (user, key): a repeat detection overwrites the stored value"""
        now = datetime.now().isoformat()
        existing = await self.get_preference(user_id, pref.key)

        if existing:
            result = self.client.table("user_preferences").update({
                "preference_value": pref.value,
                "confidence": pref.confidence,
                "source": pref.source,
                "updated_at": now
            }).eq("id", existing["id"]).execute()
            return result.data[0]

        result = self.client.table("user_preferences").insert({
            "user_id": user_id,
            "preference_type": pref.type.value,
            "preference_key": pref.key,
            "preference_value": pref.value,
            "confidence": pref.confidence,
            "source": pref.source,
            "learned_at": now,
            "updated_at": now
        }).execute()
        return result.data[0]

    async def get_preferences(self, user_id: int, min_confidence: float = 0.0) -> List[Dict]:
        """Stored preferences at or above a confidence, newest first"""
        result = self.client.table("user_preferences").select("*")\
            .eq("user_id", user_id)\
            .gte("confidence", min_confidence)\
            .order("learned_at", desc=True)\
            .execute()
        return result.data
