"""Export allotment results to GeoJSON, summary CSV and diagnostics JSON."""
import geopandas as gpd
import pandas as pd
import json
import os
import tempfile
from datetime import datetime
from loguru import logger
from shapely.geometry import Point
from typing import Dict, List, Sequence, Any

from models.entities import Centre
from models.view_models import StudentView, TravelStatus


class AllotmentExporter:
    def __init__(self, export_dir: str = None):
        self.allotment_gdf = None
        self.summary_df = None
        # Set export directory outside codebase
        self.export_dir = export_dir or os.path.join(tempfile.gettempdir(), 'allotment_exports')
        os.makedirs(self.export_dir, exist_ok=True)

    def export_diagnostics_report(self, report: Dict[str, Any], timestamp: datetime = None) -> str:
        """Write a backend diagnostics report to a timestamped JSON file."""
        timestamp = timestamp or datetime.now()
        stamp = timestamp.isoformat().replace(':', '-').replace('.', '-')
        output_path = os.path.join(self.export_dir, f"allotment_diagnostics_{stamp}.json")

        with open(output_path, 'w', encoding='utf-8') as f:
            json.dump(report, f, indent=2)

        logger.success(f"Diagnostic report exported: {output_path}")
        return output_path

    def prepare_allotment_geojson(self, views: Sequence[StudentView], centres: Sequence[Centre]) -> gpd.GeoDataFrame:
        """One point feature per centre and per student."""
        features = []

        for centre in centres:
            features.append({
                'feature_type': 'centre',
                'id': centre.centre_id,
                'category': None,
                'status': None,
                'centre_id': centre.centre_id,
                'max_capacity': centre.max_capacity,
                'travel_time_s': None,
                'geometry': Point(centre.lon, centre.lat),
            })

        for view in views:
            travel = view.travel_time_to(view.centre_id) if view.centre_id else None
            features.append({
                'feature_type': 'student',
                'id': view.student.student_id,
                'category': view.student.category.value,
                'status': view.status.value,
                'centre_id': view.centre_id,
                'max_capacity': None,
                'travel_time_s': travel.seconds if travel and travel.status is TravelStatus.KNOWN else None,
                'geometry': Point(view.student.lon, view.student.lat),
            })

        if not features:
            raise ValueError("No centres or students to export")

        self.allotment_gdf = gpd.GeoDataFrame(features, geometry='geometry', crs='EPSG:4326')
        for column in ['max_capacity', 'travel_time_s']:
            self.allotment_gdf[column] = self.allotment_gdf[column].astype(float)
        logger.info(f"Prepared {len(centres)} centres and {len(views)} students for export")
        return self.allotment_gdf

    def export_allotment_geojson(self, filename: str = "allotment.geojson") -> str:
        if self.allotment_gdf is None:
            raise ValueError("No allotment data prepared")

        output_path = os.path.join(self.export_dir, filename)
        self.allotment_gdf.to_file(output_path, driver='GeoJSON')
        logger.info(f"Exported allotment GeoJSON: {output_path}")
        return output_path

    def prepare_summary_csv(self, summary_df: pd.DataFrame, views: Sequence[StudentView]) -> pd.DataFrame:
        """Per-centre summary plus an UNASSIGNED and a TOTAL row."""
        unassigned = sum(1 for view in views if not view.is_assigned)
        extra_rows: List[Dict[str, Any]] = [
            {'centre_id': 'UNASSIGNED', 'assigned': unassigned, 'max_capacity': 0, 'utilization': 0.0},
            {
                'centre_id': 'TOTAL',
                'assigned': int(summary_df['assigned'].sum()),
                'max_capacity': int(summary_df['max_capacity'].sum()),
                'utilization': (
                    round(summary_df['assigned'].sum() / summary_df['max_capacity'].sum(), 4)
                    if summary_df['max_capacity'].sum() else 0.0
                ),
            },
        ]

        self.summary_df = pd.concat([summary_df, pd.DataFrame(extra_rows)], ignore_index=True)
        return self.summary_df

    def export_summary_csv(self, filename: str = "summary.csv") -> str:
        if self.summary_df is None:
            raise ValueError("No summary data prepared")

        output_path = os.path.join(self.export_dir, filename)
        self.summary_df.to_csv(output_path, index=False)
        logger.info(f"Exported summary CSV: {output_path}")
        return output_path
