"""Pure domain types: clock, money helpers, fiscal calendar, DTOs and audit enums."""
