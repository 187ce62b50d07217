"""Building blocks of the picket fence analysis: geometry, contours, images, and profiles."""
