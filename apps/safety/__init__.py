"""Safety app package.

Safety alerts are hazard notices owners attach to a campground or a
single campsite. Alerts flagged ``requires_acknowledgement`` gate the
booking flow until the camper acknowledges them (see ``gate.py``).
"""
