import logging
from core.trip_structurer import LocationBucket, StructuredTrip
from datetime import UTC, datetime
from pathlib import Path

logger = logging.getLogger(__name__)


class ItineraryReportGenerator:
    """Render a structured trip as a human-readable markdown itinerary"""

    def __init__(self):
        self.report_lines = []

    def generate_header_section(self, structured: StructuredTrip) -> None:
        """Report header with trip overview"""
        days = structured.days
        generation_date = datetime.now(UTC).strftime('%Y-%m-%d %H:%M:%S UTC')

        photo_count = sum(len(bucket.photos) for day in days for bucket in day.locations)
        review_count = sum(len(bucket.reviews) for day in days for bucket in day.locations)
        place_ids = {bucket.location.id for day in days for bucket in day.locations}

        period = f"{days[0].date} to {days[-1].date}" if days else 'N/A'

        self.report_lines.extend(
            [
                f"# {structured.trip.name or 'Trip'}",
                "",
                f"**Generated:** {generation_date}",
                f"**Status:** {structured.trip.status}",
                f"**Trip Period:** {period}",
                "",
                "## Overview",
                "",
                f"- **Days:** {len(days)}",
                f"- **Places:** {len(place_ids)}",
                f"- **Photos:** {photo_count}",
                f"- **Reviews:** {review_count}",
                "",
            ]
        )

    def generate_location_section(self, bucket: LocationBucket) -> None:
        """One place within a day"""
        location = bucket.location
        place = ', '.join(part for part in (location.city, location.country) if part)

        heading = f"### {location.name}"
        if place:
            heading += f" ({place})"
        self.report_lines.extend([heading, ""])

        if location.address:
            self.report_lines.append(f"*{location.address}*")
            self.report_lines.append("")
        if location.description:
            self.report_lines.extend([f"> {location.description}", ""])

        for photo in bucket.photos:
            caption = f' "{photo.caption}"' if photo.caption else ''
            shot = photo.shot_at[11:16] if photo.shot_at and len(photo.shot_at) >= 16 else 'time unknown'
            self.report_lines.append(f"- Photo by {photo.author} at {shot}{caption}")

        for review in bucket.reviews:
            label = 'Voice note' if review.format == 'audio' else 'Review'
            self.report_lines.append(f"- {label} by {review.author}: {review.text or ''}")

        self.report_lines.append("")

    def generate_days_section(self, structured: StructuredTrip) -> None:
        """Day-by-day itinerary"""
        if not structured.days:
            self.report_lines.extend(["No photos or reviews recorded yet.", ""])
            return

        for day in structured.days:
            self.report_lines.extend([f"## Day {day.day_number}: {day.date}", ""])
            for bucket in day.locations:
                self.generate_location_section(bucket)

    def generate_report(self, structured: StructuredTrip) -> str:
        """Build the full markdown report"""
        self.report_lines = []
        self.generate_header_section(structured)
        self.generate_days_section(structured)
        return '\n'.join(self.report_lines)

    def write_report(self, structured: StructuredTrip, output_file: Path) -> bool:
        """Write the report to disk"""
        try:
            output_file.parent.mkdir(parents=True, exist_ok=True)
            with open(output_file, 'w') as f:
                f.write(self.generate_report(structured))
            logger.info(f"Itinerary written to {output_file}")
            return True
        except OSError as e:
            logger.error(f"Failed to write itinerary: {e}")
            return False
